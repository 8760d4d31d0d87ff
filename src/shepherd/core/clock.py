"""Injectable time source.

Expiry checks never read the system clock directly; services receive a Clock so
tests can pin "now" and move it forward.
"""

from datetime import datetime, timedelta
from typing import Protocol

from src.shepherd.models.base import utc_now


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Naive-UTC wall clock, matching the storage convention of utc_now()."""

    def now(self) -> datetime:
        return utc_now()


class FixedClock:
    """Clock pinned to a given instant, advanced manually."""

    def __init__(self, at: datetime | None = None):
        self._now = at or utc_now()

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta

    def set(self, at: datetime) -> None:
        self._now = at
