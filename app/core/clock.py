"""Time source for the attempt engine.

Every timestamp an attempt carries (started_at, updated_at, expired_at,
submitted_at) and every deadline comparison goes through a Clock, never
through an ambient ``time.time()`` call.  Tests swap in FrozenClock to
land exactly on an expiry boundary.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int:
        """Current time as integer milliseconds since the Unix epoch."""
        ...


class SystemClock:
    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class FrozenClock:
    """Manually advanced clock for tests."""

    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self._now_ms = now_ms

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> None:
        self._now_ms += ms

    def set(self, now_ms: int) -> None:
        self._now_ms = now_ms


system_clock = SystemClock()
