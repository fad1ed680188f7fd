"""
Lifecycle Controller.

The only component that changes a booking's status. Guest requests, staff
decisions and the expiration sweeper all come through here; every transition
is checked against the transition table and written with a single guarded
update in the store.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, List, Optional

from tablebook.availability import DEFAULT_LOOKAHEAD, resolve_availability
from tablebook.errors import InvalidTransition, NotFound, ValidationError
from tablebook.layout import TableDirectory
from tablebook.schemas import (
    TERMINAL_STATUSES, BookingCreate, BookingRecord, BookingStatus, Decision, TableStatus
)
from tablebook.store import BookingStore
from tablebook.timeutils import ensure_utc, normalize_slot, utcnow

logger = logging.getLogger(__name__)

AUTO_DECLINE_REASON = "Automatic cancellation: No response from administrator."
PENDING_TIMEOUT = timedelta(minutes=3)
SERVICE_WINDOW = timedelta(hours=2)

TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.DECLINED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.OCCUPIED, BookingStatus.COMPLETED}),
    BookingStatus.OCCUPIED: frozenset({BookingStatus.COMPLETED}),
    **{status: frozenset() for status in TERMINAL_STATUSES},
}


def sources_of(target: BookingStatus) -> FrozenSet[BookingStatus]:
    """Statuses from which ``target`` can be reached."""
    return frozenset(src for src, dests in TRANSITIONS.items() if target in dests)


class BookingLifecycle:
    """
    Creates bookings and drives them through their states.

    Args:
        store: Booking store
        tables: Source of table references for capacity checks
        clock: Returns the current UTC instant
        pending_timeout: Age after which an unanswered request expires
        service_window: How long after its slot a seated booking counts as finished
        lookahead: Look-ahead window passed to the availability resolver
    """

    def __init__(
        self,
        store: BookingStore,
        tables: TableDirectory,
        clock: Callable[[], datetime] = utcnow,
        pending_timeout: timedelta = PENDING_TIMEOUT,
        service_window: timedelta = SERVICE_WINDOW,
        lookahead: timedelta = DEFAULT_LOOKAHEAD,
    ):
        self.store = store
        self.tables = tables
        self.clock = clock
        self.pending_timeout = pending_timeout
        self.service_window = service_window
        self.lookahead = lookahead

    # ---- creation ----

    def create_booking(self, restaurant_id: int, request: BookingCreate) -> BookingRecord:
        """
        Validate a guest request and store it as PENDING.

        Raises:
            NotFound: If the restaurant does not exist
            ValidationError: Unknown table, blank guest details, non-positive
                party size, or party larger than the table
        """
        restaurant = self.store.get_restaurant(restaurant_id)

        guest_name = request.guest_name.strip()
        guest_phone = request.guest_phone.strip()
        if not guest_name or not guest_phone:
            raise ValidationError("Please fill in your name and phone number.")
        if request.guest_count <= 0:
            raise ValidationError("Number of guests must be at least 1.")

        table = self.tables.resolve_table(restaurant_id, request.table_id)
        if table is None:
            raise ValidationError(f"Table {request.table_id} does not exist.")
        if request.guest_count > table.seat_capacity:
            raise ValidationError(
                f"This table only accommodates up to {table.seat_capacity} guests."
            )

        date_time = normalize_slot(request.date_time, restaurant.timezone)
        booking = self.store.create(
            restaurant_id=restaurant_id,
            table=table,
            guest_name=guest_name,
            guest_phone=guest_phone,
            guest_count=request.guest_count,
            date_time=date_time,
            now=self.clock(),
        )
        logger.info(
            f"Booking {booking.id} ({booking.booking_reference}) requested for table "
            f"{table.id} at restaurant {restaurant_id}, slot {date_time.isoformat()}"
        )
        return booking

    # ---- reads ----

    def current_time(self, now: Optional[datetime] = None) -> datetime:
        """The given instant as aware UTC, or the clock reading when omitted."""
        return ensure_utc(now) if now is not None else self.clock()

    def list_bookings(
        self, restaurant_id: int, status: Optional[BookingStatus] = None
    ) -> List[BookingRecord]:
        self.store.get_restaurant(restaurant_id)
        return self.store.get(restaurant_id, status)

    def get_booking(self, booking_id: int, restaurant_id: Optional[int] = None) -> BookingRecord:
        booking = self.store.find_by_id(booking_id)
        if restaurant_id is not None and booking.restaurant_id != restaurant_id:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    def seconds_left(self, booking: BookingRecord, now: Optional[datetime] = None) -> int:
        """Seconds until a pending request expires, never negative."""
        now = self.current_time(now)
        remaining = booking.created_at + self.pending_timeout - now
        return max(0, int(remaining.total_seconds()))

    def resolve_availability(
        self, restaurant_id: int, now: Optional[datetime] = None
    ) -> Dict[str, TableStatus]:
        """Current status of every table of the restaurant."""
        self.store.get_restaurant(restaurant_id)
        now = self.current_time(now)
        return resolve_availability(
            self.tables.list_tables(restaurant_id),
            self.store.get(restaurant_id),
            now,
            self.lookahead,
        )

    def local_instant(self, restaurant_id: int, at: Optional[datetime]) -> datetime:
        """
        UTC instant for an ``at`` given by a caller; no offset means the
        restaurant's local time, and None means now.

        Raises:
            NotFound: If the restaurant does not exist
        """
        if at is None:
            return self.clock()
        restaurant = self.store.get_restaurant(restaurant_id)
        return normalize_slot(at, restaurant.timezone)

    # ---- transitions ----

    def _transition(
        self,
        booking_id: int,
        target: BookingStatus,
        restaurant_id: Optional[int] = None,
        decline_reason: Optional[str] = None,
        now: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        date_time_before: Optional[datetime] = None,
    ) -> BookingRecord:
        if restaurant_id is not None:
            self.get_booking(booking_id, restaurant_id)

        try:
            booking = self.store.update(
                booking_id,
                expected=sources_of(target),
                status=target,
                now=self.current_time(now),
                decline_reason=decline_reason,
                created_before=created_before,
                date_time_before=date_time_before,
            )
        except InvalidTransition as e:
            logger.warning(f"Rejected transition of booking {booking_id} to {target.value}: {e}")
            raise

        logger.info(f"Booking {booking_id} is now {target.value}")
        return booking

    def confirm(self, booking_id: int, restaurant_id: Optional[int] = None) -> BookingRecord:
        return self._transition(booking_id, BookingStatus.CONFIRMED, restaurant_id)

    def decline(
        self, booking_id: int, reason: Optional[str], restaurant_id: Optional[int] = None
    ) -> BookingRecord:
        """
        Staff decline of a pending request.

        Raises:
            InvalidTransition: If the booking is no longer pending
            ValidationError: If no reason was given
        """
        reason = (reason or "").strip()
        if not reason:
            current = self.get_booking(booking_id, restaurant_id)
            if current.status not in sources_of(BookingStatus.DECLINED):
                raise InvalidTransition(
                    f"Booking {booking_id} is {current.status.value}, cannot become "
                    f"{BookingStatus.DECLINED.value}",
                    booking=current,
                )
            raise ValidationError("Please provide a reason for declining.")
        return self._transition(
            booking_id, BookingStatus.DECLINED, restaurant_id, decline_reason=reason
        )

    def decide(
        self,
        booking_id: int,
        decision: Decision,
        reason: Optional[str] = None,
        restaurant_id: Optional[int] = None,
    ) -> BookingRecord:
        if decision == Decision.CONFIRM:
            return self.confirm(booking_id, restaurant_id)
        return self.decline(booking_id, reason, restaurant_id)

    def expire(self, booking_id: int, now: Optional[datetime] = None) -> BookingRecord:
        """
        Timeout transition: decline a request nobody answered in time.

        The age check is part of the guarded update, so a request answered by
        staff in the meantime, or one not yet old enough, is left alone and
        reported as InvalidTransition.
        """
        now = self.current_time(now)
        return self._transition(
            booking_id,
            BookingStatus.DECLINED,
            decline_reason=AUTO_DECLINE_REASON,
            now=now,
            created_before=now - self.pending_timeout,
        )

    def mark_occupied(self, booking_id: int, restaurant_id: Optional[int] = None) -> BookingRecord:
        return self._transition(booking_id, BookingStatus.OCCUPIED, restaurant_id)

    def complete(
        self,
        booking_id: int,
        restaurant_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> BookingRecord:
        """Close a seated booking once its service window has passed."""
        now = self.current_time(now)
        return self._transition(
            booking_id,
            BookingStatus.COMPLETED,
            restaurant_id,
            now=now,
            date_time_before=now - self.service_window,
        )

    def is_expired(self, booking: BookingRecord, now: datetime) -> bool:
        return (
            booking.status == BookingStatus.PENDING
            and ensure_utc(now) - booking.created_at >= self.pending_timeout
        )

    def is_finished(self, booking: BookingRecord, now: datetime) -> bool:
        return (
            booking.status in (BookingStatus.CONFIRMED, BookingStatus.OCCUPIED)
            and ensure_utc(now) - booking.date_time >= self.service_window
        )
