"""
SQLAlchemy Database Models for the Table Booking Service.

This module defines the database schema for restaurants and the bookings
made against their tables. Bookings are never deleted; they form the
permanent audit trail of reservation activity.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, JSON, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from tablebook.database import Base
from tablebook.schemas import BookingStatus
from tablebook.timeutils import utcnow, to_storage


def _utcnow_naive() -> datetime:
    return to_storage(utcnow())


class Restaurant(Base):
    """
    Restaurant model.

    The floor plan is owned by the layout editor and stored here as an opaque
    JSON list of elements; the booking engine only reads table entries from it.

    Attributes:
        id (int): Primary key identifier
        name (str): Restaurant display name
        timezone (str): IANA timezone used to read guest-submitted slots
        layout (list): Floor plan elements (tables, walls, bars, plants)
        created_at (datetime): Timestamp when restaurant was created
        bookings: Related booking records
    """

    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    timezone = Column(String, nullable=False, default="UTC")
    layout = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_utcnow_naive)

    # Relationships
    bookings = relationship("Booking", back_populates="restaurant")


class Booking(Base):
    """
    Booking model representing one reservation request for one table.

    Attributes:
        id (int): Primary key identifier, also gives insertion order
        booking_reference (str): Unique guest-facing reference code
        restaurant_id (int): Foreign key to restaurant
        table_id (str): Layout identifier of the table
        table_label (str): Table label at creation time
        guest_count (int): Number of guests
        seat_capacity (int): Table capacity captured at creation
        date_time (datetime): Reserved slot, naive UTC
        status (str): PENDING/CONFIRMED/DECLINED/OCCUPIED/COMPLETED
        decline_reason (str): Set only for DECLINED bookings
        created_at (datetime): When the request was made, naive UTC
        updated_at (datetime): Last status change, naive UTC
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_status_created_at", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(7), unique=True, index=True, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    table_id = Column(String, nullable=False)
    table_label = Column(String, nullable=False, default="")
    guest_name = Column(String, nullable=False)
    guest_phone = Column(String, nullable=False)
    guest_count = Column(Integer, nullable=False)
    seat_capacity = Column(Integer, nullable=False)
    date_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)
    decline_reason = Column(Text)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)
    updated_at = Column(DateTime, default=_utcnow_naive)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="bookings")
