"""
Unit tests for the ProbeExecutor.
"""

import logging
import queue
import threading

import pytest

from conftest import StaticProbe, make_host
from fleetprobe.executor import ConcurrencyThrottle, ProbeExecutor
from fleetprobe.models import ProbeDefinition
from fleetprobe.probes import ProbeError


def _drain(metric_queue):
    samples = []
    while not metric_queue.empty():
        samples.append(metric_queue.get_nowait())
    return samples


@pytest.fixture
def definition():
    return ProbeDefinition(service="production", roles=("web",))


@pytest.mark.unit
class TestProbeExecutor:
    """Test cases for running one host's probe set."""

    def test_samples_are_emitted(self, definition):
        host = make_host(1)
        metric_queue = queue.Queue(maxsize=10)
        probes = [StaticProbe(host, {"a": 1.0, "b": 2.0})]
        executor = ProbeExecutor(
            definition, host, metric_queue, ConcurrencyThrottle(1), threading.Event(),
            probe_generator=lambda d, h: probes,
        )

        executor.run()

        samples = _drain(metric_queue)
        assert [(s.host_id, s.name, s.value) for s in samples] == [
            ("host1", "a", 1.0), ("host1", "b", 2.0),
        ]
        assert executor.probes_succeeded == 1
        assert executor.samples_emitted == 2

    def test_failing_probe_is_isolated(self, definition, caplog):
        """A failing probe is logged with host and probe identity; later probes still run."""
        host = make_host(2)
        metric_queue = queue.Queue(maxsize=10)
        probes = [
            StaticProbe(host, error=ProbeError("connection refused"), label="broken"),
            StaticProbe(host, {"ok": 1.0}),
        ]
        executor = ProbeExecutor(
            definition, host, metric_queue, ConcurrencyThrottle(1), threading.Event(),
            probe_generator=lambda d, h: probes,
        )

        with caplog.at_level(logging.WARNING):
            executor.run()

        assert [s.name for s in _drain(metric_queue)] == ["ok"]
        assert executor.probes_failed == 1
        assert executor.probes_succeeded == 1
        assert "host_id:host2" in caplog.text
        assert "host_name:web2.example.com" in caplog.text
        assert "broken probe" in caplog.text
        assert "connection refused" in caplog.text

    def test_unexpected_exception_is_isolated(self, definition):
        host = make_host(1)
        metric_queue = queue.Queue(maxsize=10)
        probes = [StaticProbe(host, error=RuntimeError("bug")), StaticProbe(host)]
        executor = ProbeExecutor(
            definition, host, metric_queue, ConcurrencyThrottle(1), threading.Event(),
            probe_generator=lambda d, h: probes,
        )

        executor.run()

        assert executor.probes_failed == 1
        assert executor.samples_emitted == 1

    def test_throttle_held_for_whole_probe_set(self, definition):
        host = make_host(1)
        throttle = ConcurrencyThrottle(1)
        holders_seen = []

        class RecordingProbe(StaticProbe):
            def run(self, cancel_event):
                holders_seen.append(throttle.holders)
                return super().run(cancel_event)

        probes = [RecordingProbe(host), RecordingProbe(host)]
        executor = ProbeExecutor(
            definition, host, queue.Queue(maxsize=10), throttle, threading.Event(),
            probe_generator=lambda d, h: probes,
        )

        executor.run()

        assert holders_seen == [1, 1]
        assert throttle.holders == 0
        assert throttle.peak_holders == 1

    def test_generation_happens_inside_the_slot(self, definition):
        host = make_host(1)
        throttle = ConcurrencyThrottle(1)
        holders_seen = []

        def generator(d, h):
            holders_seen.append(throttle.holders)
            return []

        ProbeExecutor(
            definition, host, queue.Queue(maxsize=1), throttle, threading.Event(),
            probe_generator=generator,
        ).run()

        assert holders_seen == [1]

    def test_cancelled_before_start_runs_nothing(self, definition):
        host = make_host(1)
        cancel_event = threading.Event()
        cancel_event.set()
        probe = StaticProbe(host)
        executor = ProbeExecutor(
            definition, host, queue.Queue(maxsize=10), ConcurrencyThrottle(1), cancel_event,
            probe_generator=lambda d, h: [probe],
        )

        executor.run()

        assert probe.runs == 0

    def test_full_queue_blocks_until_space(self, definition):
        host = make_host(1)
        metric_queue = queue.Queue(maxsize=1)
        probes = [StaticProbe(host, {"a": 1.0, "b": 2.0, "c": 3.0})]
        executor = ProbeExecutor(
            definition, host, metric_queue, ConcurrencyThrottle(1), threading.Event(),
            probe_generator=lambda d, h: probes, queue_timeout=0.01,
        )
        thread = threading.Thread(target=executor.run)
        thread.start()

        received = []
        for _ in range(3):
            received.append(metric_queue.get(timeout=2.0).name)
        thread.join(timeout=2.0)

        assert received == ["a", "b", "c"]
        assert executor.samples_dropped == 0

    def test_full_queue_drops_only_on_cancellation(self, definition):
        host = make_host(1)
        metric_queue = queue.Queue(maxsize=1)
        cancel_event = threading.Event()
        probes = [StaticProbe(host, {"a": 1.0, "b": 2.0, "c": 3.0})]
        executor = ProbeExecutor(
            definition, host, metric_queue, ConcurrencyThrottle(1), cancel_event,
            probe_generator=lambda d, h: probes, queue_timeout=0.01,
        )
        thread = threading.Thread(target=executor.run)
        thread.start()

        thread.join(timeout=0.2)
        assert thread.is_alive()

        cancel_event.set()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert executor.samples_emitted == 1
        assert executor.samples_dropped == 2
