"""
Time sources for auction pricing.

Auction timing reads "now" through a Clock so that callers (and tests) decide
how time advances. Timestamps are integer seconds.
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that reports the current time in integer seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before 0")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards ({timestamp} < {self._now})")
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot advance by a negative amount")
        self._now += seconds
        return self._now
