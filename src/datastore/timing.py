"""Wall-clock budget for a single import pass."""

import time
from typing import Callable

Clock = Callable[[], float]


class TimeBudget:
    """Tracks elapsed time against an optional limit in seconds.

    The check is voluntary: callers poll ``exhausted()`` between units of
    work, so a pass may overrun the limit by up to one unit.
    """

    def __init__(self, limit: float | None, clock: Clock = time.monotonic):
        self._limit = limit
        self._clock = clock
        self._started: float | None = None

    def start(self) -> None:
        self._started = self._clock()

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return self._clock() - self._started

    def exhausted(self) -> bool:
        if self._limit is None:
            return False
        return self.elapsed >= self._limit
