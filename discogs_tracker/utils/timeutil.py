"""
Discogs Value Tracker — UTC time helpers

Every persisted timestamp is UTC with second precision. SQLite hands
datetimes back naive, so reads go through ensure_utc_aware() before any
comparison with a timezone-aware value.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def ensure_utc_aware(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert an aware one to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage(dt: datetime) -> datetime:
    """Normalise a datetime for persistence: UTC, whole seconds."""
    return ensure_utc_aware(dt).replace(microsecond=0)
