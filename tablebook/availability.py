"""
Availability Resolver.

Derives whether a table is AVAILABLE, PENDING or BOOKED at a given instant
from the bookings that touch it. Nothing here is cached: ``now`` moves on
between calls, so the status is recomputed on every query.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from tablebook.schemas import (
    ACTIVE_STATUSES, BookingRecord, BookingStatus, TableReference, TableStatus
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD = timedelta(minutes=60)

_SEATED_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.OCCUPIED})


def _latest(bookings: List[BookingRecord]) -> Optional[BookingRecord]:
    return max(bookings, key=lambda b: b.date_time) if bookings else None


def resolve_table_status(
    bookings: Iterable[BookingRecord],
    table_id: str,
    now: datetime,
    lookahead: timedelta = DEFAULT_LOOKAHEAD,
) -> TableStatus:
    """
    Status of one table at ``now``.

    Rules, first match wins:
        1. A PENDING booking whose slot has started -> PENDING.
        2. A CONFIRMED or OCCUPIED booking whose slot has started -> BOOKED.
        3. The next upcoming PENDING/CONFIRMED/OCCUPIED booking starts within
           ``lookahead`` -> BOOKED.
        4. Otherwise AVAILABLE.

    When several bookings match rule 1 or 2 the one with the latest slot is
    the one reported in the debug log.

    Args:
        bookings: Bookings of the restaurant (any table, any status)
        table_id: Table to resolve
        now: Reference instant, timezone-aware
        lookahead: How far ahead an upcoming booking blocks the table

    Returns:
        TableStatus
    """
    table_bookings = [b for b in bookings if b.table_id == table_id]

    started_pending = [
        b for b in table_bookings
        if b.status == BookingStatus.PENDING and b.date_time <= now
    ]
    if started_pending:
        winner = _latest(started_pending)
        logger.debug(f"Table {table_id} pending on booking {winner.id} at {now.isoformat()}")
        return TableStatus.PENDING

    started_seated = [
        b for b in table_bookings
        if b.status in _SEATED_STATUSES and b.date_time <= now
    ]
    if started_seated:
        winner = _latest(started_seated)
        logger.debug(f"Table {table_id} booked by booking {winner.id} at {now.isoformat()}")
        return TableStatus.BOOKED

    upcoming = [
        b for b in table_bookings
        if b.status in ACTIVE_STATUSES and b.date_time > now
    ]
    if upcoming:
        nearest = min(upcoming, key=lambda b: b.date_time)
        if nearest.date_time - now <= lookahead:
            logger.debug(
                f"Table {table_id} held for booking {nearest.id} starting {nearest.date_time.isoformat()}"
            )
            return TableStatus.BOOKED

    return TableStatus.AVAILABLE


def resolve_availability(
    tables: Iterable[TableReference],
    bookings: Iterable[BookingRecord],
    now: datetime,
    lookahead: timedelta = DEFAULT_LOOKAHEAD,
) -> Dict[str, TableStatus]:
    """
    Status of every table of a restaurant at ``now``.

    Returns:
        Dict mapping table id to its TableStatus, in layout order
    """
    snapshot = list(bookings)
    return {
        table.id: resolve_table_status(snapshot, table.id, now, lookahead)
        for table in tables
    }
