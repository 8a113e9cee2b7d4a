"""Timezone utilities for reliable UTC handling."""

from datetime import datetime, timezone
from typing import Callable


def now_utc() -> datetime:
    """Get current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (SQLite returns naive
    datetimes even for ``DateTime(timezone=True)`` columns).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# A clock is any zero-argument callable returning an aware datetime
Clock = Callable[[], datetime]


class SystemClock:
    """Wall clock in UTC."""

    def __call__(self) -> datetime:
        return now_utc()


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime):
        self.instant = as_utc(instant)

    def __call__(self) -> datetime:
        return self.instant

    def set(self, instant: datetime) -> None:
        self.instant = as_utc(instant)

    def advance(self, delta) -> None:
        self.instant = self.instant + delta
