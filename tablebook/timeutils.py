"""
Time helpers.

All persisted timestamps are UTC. Guests submit a reservation slot without an
offset; such values are read as the restaurant's local wall-clock time.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tablebook.errors import ValidationError


def utcnow() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach or convert to UTC.

    SQLite hands back naive datetimes for values we stored as UTC, so a naive
    value here is taken to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime) -> datetime:
    """Naive UTC datetime for the database column."""
    return ensure_utc(value).replace(tzinfo=None)


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone: {name}") from e


def normalize_slot(value: datetime, restaurant_tz: str) -> datetime:
    """
    Normalize a requested reservation slot to UTC.

    Args:
        value: The slot as submitted by the guest
        restaurant_tz: IANA timezone name of the restaurant

    Returns:
        datetime: Timezone-aware UTC datetime

    Example:
        A naive ``2025-06-01 19:00`` for ``Europe/Moscow`` becomes
        ``2025-06-01 16:00+00:00``.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=get_zone(restaurant_tz))
    return value.astimezone(timezone.utc)
