"""
Shared utility functions for the application.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    SQLite hands DateTime(timezone=True) columns back without tzinfo; all
    timestamps are written in UTC, so naive values are read as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
