"""
Timestamp normalization for check-in records.

The feed and the export file disagree on timestamp formats:

- API:    RFC 1123 with numeric zone, e.g. "Sat, 01 Nov 2025 18:30:00 +0000"
- Export: "2025-11-01 18:30:00" (no zone, UTC)

Everything is normalized to a timezone-aware UTC datetime before it is
used as a partition key or stored as metadata.

Example:
    >>> from untappd_mirror.utils.time import parse_checkin_timestamp, date_partition
    >>>
    >>> dt = parse_checkin_timestamp("Sat, 01 Nov 2025 18:30:00 +0000")
    >>> date_partition(dt)
    '2025/11/01'
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

EXPORT_FORMAT = "%Y-%m-%d %H:%M:%S"


def to_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime (naive values are assumed UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_checkin_timestamp(value: str | datetime) -> datetime:
    """Parse any supported check-in timestamp into an aware UTC datetime.

    Args:
        value: RFC 1123 string, export-format string, ISO 8601 string,
            or a datetime

    Returns:
        Timezone-aware UTC datetime

    Raises:
        ValueError: If the value matches none of the supported formats
    """
    if isinstance(value, datetime):
        return to_utc(value)

    text = str(value).strip()
    if not text:
        raise ValueError("empty timestamp")

    try:
        return to_utc(datetime.strptime(text, EXPORT_FORMAT))
    except ValueError:
        pass

    if "," in text:
        try:
            return to_utc(parsedate_to_datetime(text))
        except (TypeError, ValueError, IndexError) as e:
            raise ValueError(f"unparseable timestamp {text!r}") from e

    try:
        return to_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise ValueError(f"unparseable timestamp {text!r}") from e


def date_partition(dt: datetime) -> str:
    """Return the YYYY/MM/DD partition for a timestamp (in UTC)."""
    return to_utc(dt).strftime("%Y/%m/%d")


def format_timestamp(dt: datetime) -> str:
    """Format a timestamp as ISO 8601 UTC with a trailing Z."""
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
