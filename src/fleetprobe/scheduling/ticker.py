"""
Wall-clock periodic tick source.
"""

import threading
import time
from typing import Callable


class Ticker:
    """
    Fires on a fixed grid of ``start + k * interval``.

    When the consumer falls behind, the tick that became due while it was busy
    fires as soon as it is asked for again; further missed grid points are
    discarded, so there is never a burst of catch-up ticks and subsequent ticks
    stay aligned to the original grid.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        if interval <= 0:
            raise ValueError(f"tick interval must be positive, got {interval}")
        self.interval = interval
        self._clock = clock
        self._next_tick = clock() + interval

    @property
    def next_tick(self) -> float:
        """Clock time at which the next tick is due."""
        return self._next_tick

    def remaining(self) -> float:
        """Seconds until the next tick, zero if it is already due."""
        return max(0.0, self._next_tick - self._clock())

    def poll(self) -> bool:
        """Consume the pending tick without blocking; False if none is due."""
        if self._clock() < self._next_tick:
            return False
        self._advance()
        return True

    def wait(self, cancel_event: threading.Event) -> bool:
        """
        Wait for the next tick.

        Returns:
            True when the tick fired, False when ``cancel_event`` was set first.
        """
        remaining = self._next_tick - self._clock()
        if remaining > 0:
            if cancel_event.wait(remaining):
                return False
        elif cancel_event.is_set():
            return False
        self._advance()
        return True

    def _advance(self) -> None:
        missed = int((self._clock() - self._next_tick) // self.interval)
        self._next_tick += (max(missed, 0) + 1) * self.interval
