"""
Clock collaborators.

The escrow core never reads system time directly; every deadline comparison
goes through an injected clock returning integer Unix seconds.
"""

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        self._now += seconds
        return self._now
