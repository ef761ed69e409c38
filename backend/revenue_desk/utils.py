"""
Shared utility functions.
"""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """
    Return the current UTC time as a naive datetime (no tzinfo).
    Replaces the deprecated ``datetime.utcnow()``.
    Naive datetimes are used because our DB columns are TIMESTAMP WITHOUT TIME ZONE.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_timestamp(previous: datetime | None) -> datetime:
    """Current time, bumped past ``previous`` so ``updated_at`` always moves forward."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def mask_secret(value: str | None) -> str:
    """Return masked representation of a key or password."""
    if not value:
        return ""
    if len(value) <= 12:
        return "••••••••"
    return value[:6] + "•••••••••••••" + value[-4:]
