"""
Shared types for the booking engine.

Statuses, the read-only table reference handed over by the layout subsystem,
immutable booking snapshots, and the request/response bodies of the API.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tablebook.timeutils import ensure_utc


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    OCCUPIED = "OCCUPIED"  # walk-ins or manual seating
    COMPLETED = "COMPLETED"


TERMINAL_STATUSES = frozenset({BookingStatus.DECLINED, BookingStatus.COMPLETED})

# Statuses that hold a table, either now or at a future slot.
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.OCCUPIED}
)


class TableStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    BOOKED = "BOOKED"


class Decision(str, Enum):
    CONFIRM = "CONFIRM"
    DECLINE = "DECLINE"


class TableReference(BaseModel):
    """A physical table as far as booking is concerned: id, seats and a label."""

    model_config = ConfigDict(frozen=True)

    id: str
    seat_capacity: int = Field(gt=0)
    label: str = ""


class BookingRecord(BaseModel):
    """
    Immutable snapshot of one booking.

    Attributes:
        id (int): Store-assigned identifier
        booking_reference (str): Short code shown to the guest
        restaurant_id (int): Owning restaurant
        table_id (str): Layout identifier of the reserved table
        table_label (str): Table label at creation time
        guest_count (int): Party size, never above ``seat_capacity``
        seat_capacity (int): Table capacity captured at creation
        date_time (datetime): Reserved slot in UTC
        created_at (datetime): When the request was made, UTC
        status (BookingStatus): Current lifecycle state
        decline_reason (str): Present only when status is DECLINED
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    booking_reference: str
    restaurant_id: int
    table_id: str
    table_label: str = ""
    guest_name: str
    guest_phone: str
    guest_count: int
    seat_capacity: int
    date_time: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None
    status: BookingStatus
    decline_reason: Optional[str] = None

    @field_validator("date_time", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class RestaurantInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    timezone: str


class BookingCreate(BaseModel):
    """Guest booking request. ``date_time`` without offset is restaurant-local."""

    table_id: str
    guest_name: str
    guest_phone: str
    guest_count: int
    date_time: datetime


class DecisionRequest(BaseModel):
    decision: Decision
    reason: Optional[str] = None


class PendingBooking(BaseModel):
    booking: BookingRecord
    seconds_left: int


class AvailabilityResponse(BaseModel):
    restaurant_id: int
    at: datetime
    tables: Dict[str, TableStatus]


class CleanupResponse(BaseModel):
    updated: int
    bookings: List[BookingRecord]
