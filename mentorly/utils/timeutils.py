from datetime import datetime, UTC
from typing import Optional


def utcnow() -> datetime:
    """Sample the wall clock. Never cached: callers ask again on every check."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC; convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def resolve_now(now: Optional[datetime]) -> datetime:
    return utcnow() if now is None else ensure_utc(now)
