"""Time utilities for UTC timestamp parsing and formatting."""

from datetime import datetime, timezone

DATE_ONLY_LENGTH = 10
TIMESTAMP_LENGTH = 24


def parse_utc(value: str) -> datetime:
    """
    Parse a request date string into a timezone-aware UTC datetime.

    Accepts exactly a 10-character date (``2014-01-31``, read as UTC midnight)
    or a 24-character timestamp (``2014-01-31T12:30:58.123Z``).

    Raises:
        ValueError: If the length is wrong or the string does not parse
    """
    if len(value) == DATE_ONLY_LENGTH:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    elif len(value) == TIMESTAMP_LENGTH:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid string length for date parsing: {len(value)}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc_z(dt: datetime) -> str:
    """
    Convert datetime to a 24-character ISO 8601 UTC string (millisecond precision).

    Raises:
        ValueError: If datetime is naive (not timezone-aware)

    Example:
        >>> to_utc_z(datetime(2025, 12, 23, 0, 27, 7, 804867, tzinfo=timezone.utc))
        '2025-12-23T00:27:07.804Z'
    """
    if dt.tzinfo is None:
        raise ValueError(
            f"Naive datetime not allowed. Got {dt}. "
            "Use datetime.now(timezone.utc) or dt.replace(tzinfo=timezone.utc)"
        )
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt_utc.microsecond // 1000:03d}Z"

