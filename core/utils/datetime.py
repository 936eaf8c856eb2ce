"""Timezone-aware time helpers."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def elapsed_ms(started_at: datetime, finished_at: datetime) -> int:
    """Milliseconds between two datetimes."""
    return int((finished_at - started_at).total_seconds() * 1000)
