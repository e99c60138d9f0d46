"""
Unit tests for the wall-clock Ticker.
"""

import threading
import time

import pytest

from fleetprobe.scheduling import Ticker


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestTicker:
    """Test cases for the tick grid."""

    def test_first_tick_one_interval_after_start(self):
        clock = FakeClock()
        ticker = Ticker(60.0, clock=clock)

        assert ticker.next_tick == 1060.0
        assert ticker.remaining() == 60.0
        assert not ticker.poll()

    def test_poll_fires_on_grid(self):
        clock = FakeClock()
        ticker = Ticker(60.0, clock=clock)

        clock.now = 1060.5
        assert ticker.poll()
        assert ticker.next_tick == 1120.0
        assert not ticker.poll()

    def test_overrun_fires_once_without_catch_up(self):
        """After an overrun one tick fires immediately and the grid is kept."""
        clock = FakeClock()
        ticker = Ticker(60.0, clock=clock)

        clock.now = 1200.0  # two full intervals late
        assert ticker.poll()
        assert ticker.next_tick == 1240.0
        assert not ticker.poll()

    def test_wait_overdue_returns_immediately(self):
        clock = FakeClock()
        ticker = Ticker(60.0, clock=clock)
        clock.now = 1075.0

        started = time.monotonic()
        assert ticker.wait(threading.Event())
        assert time.monotonic() - started < 0.5
        assert ticker.next_tick == 1120.0

    def test_wait_real_interval(self):
        ticker = Ticker(0.05)

        started = time.monotonic()
        assert ticker.wait(threading.Event())
        assert time.monotonic() - started >= 0.04

    def test_wait_cancelled(self):
        ticker = Ticker(10.0)
        cancel_event = threading.Event()
        threading.Timer(0.05, cancel_event.set).start()

        started = time.monotonic()
        assert not ticker.wait(cancel_event)
        assert time.monotonic() - started < 2.0

    def test_wait_overdue_but_cancelled(self):
        clock = FakeClock()
        ticker = Ticker(60.0, clock=clock)
        clock.now = 1100.0
        cancel_event = threading.Event()
        cancel_event.set()

        assert not ticker.wait(cancel_event)

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            Ticker(0)
