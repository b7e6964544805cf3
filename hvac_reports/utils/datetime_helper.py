"""
Date/time helpers
Keeps timestamps consistent between the database and API responses
"""
from datetime import datetime, timezone
from typing import Optional


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert a datetime to an ISO 8601 string with a UTC marker

    Args:
        dt: datetime (may be None)

    Returns:
        ISO 8601 string with a 'Z' suffix, or None

    Examples:
        >>> dt = datetime(2024, 11, 3, 6, 30, 0)
        >>> to_iso_string(dt)
        '2024-11-03T06:30:00Z'
    """
    if dt is None:
        return None

    # naive datetimes are stored as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    dt_utc = dt.astimezone(timezone.utc)

    return dt_utc.replace(microsecond=0).isoformat().replace('+00:00', 'Z')


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime, matching the DateTime columns

    Returns:
        naive datetime in UTC
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch_ms(dt: datetime) -> int:
    """Milliseconds since the epoch for a naive UTC datetime"""
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)
