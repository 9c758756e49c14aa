"""
Time helpers shared by the attendance and leave endpoints.

Every "now" read by request handlers goes through ``utcnow`` so the whole
application can be pinned to a fixed instant in tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_offset(offset: str) -> timezone:
    """Turn an offset such as ``+05:00`` or ``-03:30`` into a tzinfo."""
    if not offset or offset[0] not in "+-":
        raise ValueError(f"Invalid timezone offset: {offset!r}")
    sign = 1 if offset[0] == "+" else -1
    parts = offset[1:].split(":")
    hours = int(parts[0])
    minutes = int(parts[1]) if len(parts) > 1 else 0
    if hours > 14 or minutes > 59:
        raise ValueError(f"Invalid timezone offset: {offset!r}")
    return timezone(timedelta(hours=sign * hours, minutes=sign * minutes))


def to_local(dt: datetime, offset: str) -> datetime:
    return ensure_utc(dt).astimezone(parse_offset(offset))
