"""Minimum-interval pacing for calls against shared external providers."""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")


class Throttle:
    """Enforce a minimum interval between consecutive dispatches.

    One instance is shared by every pass that talks to the same provider, so the
    pacing holds across passes and not only within a single loop. The interval is
    measured from the previous dispatch, whether that call succeeded or not.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self.min_interval = min_interval
        self.clock = clock
        self.sleep = sleep
        self.last_dispatch: float | None = None
        self.dispatches = 0
        self.lock = threading.Lock()

    def wait(self) -> float:
        """Block until the next dispatch is allowed; return the time slept."""
        with self.lock:
            waited = 0.0
            if self.last_dispatch is not None:
                remaining = self.min_interval - (self.clock() - self.last_dispatch)
                if remaining > 0:
                    self.sleep(remaining)
                    waited = remaining
            self.last_dispatch = self.clock()
            self.dispatches += 1
            return waited

    def iterate(self, items: Iterable[T]) -> Iterator[T]:
        """Yield ``items`` one at a time, each released only when pacing allows."""
        for item in items:
            self.wait()
            yield item
