"""Injectable clocks and the periodic task used for evaluation ticks."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

_LOGGER = logging.getLogger(__name__)


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall-clock time in epoch milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Virtual clock advanced explicitly by tests and replays."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def now_ms(self) -> int:
        return self._now

    def set(self, now_ms: int) -> None:
        if now_ms < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = int(now_ms)

    def advance(self, delta_ms: int) -> int:
        if delta_ms < 0:
            raise ValueError("delta_ms must be >= 0")
        self._now += int(delta_ms)
        return self._now


class PeriodicTask:
    """Fixed-interval callback driven by an external ``run_pending`` call.

    The host decides when time passes (an event loop timer, a replay loop or a
    test). Each ``run_pending`` fires the callback at most once, however many
    periods were missed, and realigns the next due time past ``now``.
    """

    def __init__(self, interval_ms: int, callback: Callable[[int], None]) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be greater than zero")
        self._interval = int(interval_ms)
        self._callback = callback
        self._next_due: Optional[int] = None

    @property
    def interval_ms(self) -> int:
        return self._interval

    @property
    def running(self) -> bool:
        return self._next_due is not None

    @property
    def next_due(self) -> Optional[int]:
        return self._next_due

    def start(self, now_ms: int) -> None:
        self._next_due = now_ms + self._interval

    def stop(self) -> None:
        self._next_due = None

    def run_pending(self, now_ms: int) -> bool:
        """Fire the callback if a period has elapsed. Returns True when fired."""

        if self._next_due is None or now_ms < self._next_due:
            return False
        missed = (now_ms - self._next_due) // self._interval
        if missed:
            _LOGGER.debug("Periodic task skipped %d missed period(s)", missed)
        self._next_due += (missed + 1) * self._interval
        self._callback(now_ms)
        return True


__all__ = ["Clock", "ManualClock", "PeriodicTask", "SystemClock"]
