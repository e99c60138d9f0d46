"""
Process-wide concurrency throttle for probe executions.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class ConcurrencyThrottle:
    """
    Counting semaphore bounding the number of probe executions in flight.

    A probe executor acquires one slot for the whole set of probes it runs
    against a host and releases it when done. Acquisition never fails, it
    only waits. The throttle can be used as a context manager::

        with throttle:
            run_probes()

    Attributes:
        limit: Maximum number of concurrent holders
        holders: Current number of holders
        peak_holders: Highest number of concurrent holders observed
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"throttle limit must be at least 1, got {limit}")
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)
        self._lock = threading.Lock()
        self.holders = 0
        self.peak_holders = 0

    def acquire(self) -> None:
        """Block until a slot is free, then take it."""
        logger.debug(f"throttle: acquiring ({self.holders}/{self.limit} in use)")
        self._semaphore.acquire()
        with self._lock:
            self.holders += 1
            self.peak_holders = max(self.peak_holders, self.holders)
            holders = self.holders
        logger.debug(f"throttle: acquired ({holders}/{self.limit} in use)")

    def release(self) -> None:
        """
        Give a slot back.

        Raises:
            ValueError: If released more times than acquired.
        """
        with self._lock:
            if self.holders == 0:
                raise ValueError("throttle released more times than acquired")
            self.holders -= 1
            holders = self.holders
            self._semaphore.release()
        logger.debug(f"throttle: released ({holders}/{self.limit} in use)")

    def __enter__(self) -> "ConcurrencyThrottle":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"ConcurrencyThrottle(limit={self.limit}, holders={self.holders})"
