"""
Booking Store.

Owns every booking record. Reads return immutable snapshots taken inside a
single session; status changes are single conditional UPDATE statements, so
a check-and-set on one record can never interleave with another on the same
record.
"""

import logging
import random
import string
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import select, update as sql_update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from tablebook.errors import InvalidTransition, NotFound, TransientStoreError
from tablebook.models import Booking, Restaurant
from tablebook.schemas import (
    BookingRecord, BookingStatus, RestaurantInfo, TableReference
)
from tablebook.timeutils import to_storage

logger = logging.getLogger(__name__)


def generate_booking_reference() -> str:
    """
    Generate a 7-character alphanumeric booking reference.

    Returns:
        str: A booking reference code
    """
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=7))


class BookingStore:
    """SQL-backed collection of booking records, grouped by restaurant."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.session_factory() as db:
                yield db
        except OperationalError as e:
            raise TransientStoreError(f"Booking store unavailable: {e}") from e

    # ---- restaurants ----

    def get_restaurant(self, restaurant_id: int) -> RestaurantInfo:
        with self._session() as db:
            restaurant = db.get(Restaurant, restaurant_id)
            if restaurant is None:
                raise NotFound(f"Restaurant {restaurant_id} not found")
            return RestaurantInfo.model_validate(restaurant)

    # ---- bookings ----

    def create(
        self,
        restaurant_id: int,
        table: TableReference,
        guest_name: str,
        guest_phone: str,
        guest_count: int,
        date_time: datetime,
        now: datetime,
    ) -> BookingRecord:
        """
        Persist a new PENDING booking.

        Capacity and table existence are checked by the caller; the table's
        capacity and label are copied onto the record as they are right now.

        Returns:
            BookingRecord: Snapshot of the stored booking
        """
        with self._session() as db:
            if db.get(Restaurant, restaurant_id) is None:
                raise NotFound(f"Restaurant {restaurant_id} not found")

            booking_reference = generate_booking_reference()
            while db.scalar(
                select(Booking.id).where(Booking.booking_reference == booking_reference)
            ) is not None:
                booking_reference = generate_booking_reference()

            booking = Booking(
                booking_reference=booking_reference,
                restaurant_id=restaurant_id,
                table_id=table.id,
                table_label=table.label,
                guest_name=guest_name,
                guest_phone=guest_phone,
                guest_count=guest_count,
                seat_capacity=table.seat_capacity,
                date_time=to_storage(date_time),
                status=BookingStatus.PENDING.value,
                decline_reason=None,
                created_at=to_storage(now),
                updated_at=to_storage(now),
            )
            db.add(booking)
            db.commit()
            db.refresh(booking)
            return BookingRecord.model_validate(booking)

    def get(
        self, restaurant_id: int, status: Optional[BookingStatus] = None
    ) -> List[BookingRecord]:
        """
        Snapshot of a restaurant's bookings in insertion order.

        Args:
            restaurant_id: Owning restaurant
            status: Optional status filter

        Returns:
            List of immutable booking snapshots
        """
        query = select(Booking).where(Booking.restaurant_id == restaurant_id)
        if status is not None:
            query = query.where(Booking.status == status.value)
        with self._session() as db:
            rows = db.scalars(query.order_by(Booking.id)).all()
            return [BookingRecord.model_validate(row) for row in rows]

    def list_by_status(self, *statuses: BookingStatus) -> List[BookingRecord]:
        """Snapshot of bookings across all restaurants having one of ``statuses``."""
        query = (
            select(Booking)
            .where(Booking.status.in_([s.value for s in statuses]))
            .order_by(Booking.id)
        )
        with self._session() as db:
            return [BookingRecord.model_validate(row) for row in db.scalars(query).all()]

    def all_pending(self) -> List[BookingRecord]:
        return self.list_by_status(BookingStatus.PENDING)

    def find_by_id(self, booking_id: int) -> BookingRecord:
        with self._session() as db:
            booking = db.get(Booking, booking_id)
            if booking is None:
                raise NotFound(f"Booking {booking_id} not found")
            return BookingRecord.model_validate(booking)

    def update(
        self,
        booking_id: int,
        expected: Iterable[BookingStatus],
        status: BookingStatus,
        now: datetime,
        decline_reason: Optional[str] = None,
        created_before: Optional[datetime] = None,
        date_time_before: Optional[datetime] = None,
    ) -> BookingRecord:
        """
        Atomically move a booking to ``status`` if its guard still holds.

        The guard is evaluated by the database in the same statement that
        writes the new status: the current status must be in ``expected``
        and, when given, ``created_at``/``date_time`` must not be later than
        the supplied bounds.

        Args:
            booking_id: Booking to change
            expected: Statuses the booking may currently be in
            status: New status
            now: Timestamp recorded as ``updated_at``
            decline_reason: Stored only when the new status is DECLINED
            created_before: Upper bound for ``created_at``
            date_time_before: Upper bound for ``date_time``

        Returns:
            BookingRecord: The updated snapshot

        Raises:
            NotFound: If the booking does not exist
            InvalidTransition: If the guard did not hold; carries the
                unchanged record
        """
        stmt = sql_update(Booking).where(
            Booking.id == booking_id,
            Booking.status.in_([s.value for s in expected]),
        )
        if created_before is not None:
            stmt = stmt.where(Booking.created_at <= to_storage(created_before))
        if date_time_before is not None:
            stmt = stmt.where(Booking.date_time <= to_storage(date_time_before))
        stmt = stmt.values(
            status=status.value,
            decline_reason=decline_reason if status == BookingStatus.DECLINED else None,
            updated_at=to_storage(now),
        ).execution_options(synchronize_session=False)

        with self._session() as db:
            result = db.execute(stmt)
            if result.rowcount == 1:
                db.commit()
                return BookingRecord.model_validate(db.get(Booking, booking_id))

            db.rollback()
            current = db.get(Booking, booking_id)
            if current is None:
                raise NotFound(f"Booking {booking_id} not found")
            snapshot = BookingRecord.model_validate(current)
            raise InvalidTransition(
                f"Booking {booking_id} is {snapshot.status.value}, cannot become {status.value}",
                booking=snapshot,
            )
