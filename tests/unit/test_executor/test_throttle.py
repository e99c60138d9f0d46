"""
Unit tests for the ConcurrencyThrottle.
"""

import threading
import time

import pytest

from fleetprobe.executor import ConcurrencyThrottle


@pytest.mark.unit
class TestConcurrencyThrottle:
    """Test cases for the concurrency throttle."""

    def test_acquire_release_counts(self):
        throttle = ConcurrencyThrottle(2)

        throttle.acquire()
        throttle.acquire()
        assert throttle.holders == 2

        throttle.release()
        throttle.release()
        assert throttle.holders == 0
        assert throttle.peak_holders == 2

    def test_context_manager(self):
        throttle = ConcurrencyThrottle(1)

        with throttle:
            assert throttle.holders == 1
        assert throttle.holders == 0

    def test_release_without_acquire_raises(self):
        throttle = ConcurrencyThrottle(1)

        with pytest.raises(ValueError):
            throttle.release()

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            ConcurrencyThrottle(0)

    def test_acquire_blocks_when_full(self):
        throttle = ConcurrencyThrottle(1)
        throttle.acquire()
        acquired = threading.Event()

        def waiter():
            with throttle:
                acquired.set()

        thread = threading.Thread(target=waiter)
        thread.start()
        assert not acquired.wait(0.2)

        throttle.release()
        assert acquired.wait(2.0)
        thread.join(timeout=2.0)
        assert throttle.holders == 0

    def test_holders_never_exceed_limit(self):
        """Many concurrent workers never push the holder count past the limit."""
        limit = 3
        throttle = ConcurrencyThrottle(limit)
        observed = []
        lock = threading.Lock()

        def worker():
            with throttle:
                with lock:
                    observed.append(throttle.holders)
                time.sleep(0.01)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5.0)

        assert max(observed) <= limit
        assert throttle.peak_holders <= limit
        assert throttle.holders == 0
