"""
Error taxonomy for booking operations.

Routers translate these into HTTP responses; the sweeper logs them and moves on.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tablebook.schemas import BookingRecord


class BookingError(Exception):
    """Base class for every booking-domain failure."""


class ValidationError(BookingError):
    """Malformed or capacity-exceeding creation request. Nothing was written."""


class NotFound(BookingError):
    """An unknown restaurant, table or booking identifier was referenced."""


class InvalidTransition(BookingError):
    """
    A status change was attempted from a state that does not allow it.

    The record is left untouched; ``booking`` holds its current state so the
    caller can show it instead of failing hard.
    """

    def __init__(self, message: str, booking: Optional["BookingRecord"] = None):
        super().__init__(message)
        self.booking = booking


class TransientStoreError(BookingError):
    """The backing database could not be reached. Safe to retry."""
