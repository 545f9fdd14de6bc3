# src/contractsim/runtime/clock.py
from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall clock in integer milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Clock that only moves when told to.

    Used by tests and demos to step past voting and auction deadlines
    without sleeping.
    """

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self._now = int(start_ms)
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def advance_ms(self, delta_ms: int) -> int:
        if int(delta_ms) < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._now += int(delta_ms)
            return self._now

    def advance_seconds(self, seconds: float) -> int:
        return self.advance_ms(int(seconds * 1000))
