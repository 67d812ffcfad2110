"""Shared column helpers for models."""

from datetime import datetime, timezone


def utcnow():
    """Timezone-aware UTC now, used as the Python-side column default."""
    return datetime.now(timezone.utc)


def isoformat(value):
    """ISO-8601 string for a DB datetime, or None.

    SQLite hands back naive datetimes even for timezone=True columns;
    everything we write is UTC, so naive values are tagged as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
