"""
Execution of the probe set for one host.

This module implements the ProbeExecutor, which runs every concrete probe
generated for one (definition, host) pair while holding one slot of the
process-wide concurrency throttle, and pushes the resulting samples onto the
shared metric queue.
"""

import logging
import queue
import threading
from typing import Callable, List, Optional

from ..models.config import ProbeDefinition
from ..models.host import Host
from ..models.metrics import MetricSample
from ..probes import AbstractProbe, generate_probes
from .throttle import ConcurrencyThrottle

logger = logging.getLogger(__name__)

ProbeGenerator = Callable[[ProbeDefinition, Host], List[AbstractProbe]]


class ProbeExecutor:
    """
    Runs the probes of one definition against one host.

    Probe failures are isolated: each is logged with the host and probe
    identity and the next probe still runs. Queue insertion blocks while the
    queue is full; samples are only abandoned once ``cancel_event`` is set.

    Attributes:
        probes_succeeded: Probes that returned samples without error
        probes_failed: Probes that raised
        samples_emitted: Samples put on the metric queue
        samples_dropped: Samples abandoned because of cancellation
    """

    def __init__(
        self,
        definition: ProbeDefinition,
        host: Host,
        metric_queue: "queue.Queue[MetricSample]",
        throttle: ConcurrencyThrottle,
        cancel_event: threading.Event,
        probe_generator: Optional[ProbeGenerator] = None,
        queue_timeout: float = 0.1,
    ):
        self.definition = definition
        self.host = host
        self.metric_queue = metric_queue
        self.throttle = throttle
        self.cancel_event = cancel_event
        self.probe_generator = probe_generator or generate_probes
        self.queue_timeout = queue_timeout

        self.probes_succeeded = 0
        self.probes_failed = 0
        self.samples_emitted = 0
        self.samples_dropped = 0

    def run(self) -> None:
        """Acquire a throttle slot and run every probe for the host."""
        with self.throttle:
            if self.cancel_event.is_set():
                return
            probes = self.probe_generator(self.definition, self.host)
            logger.debug(f"{len(probes)} probes generated for host {self.host}")

            for probe in probes:
                if self.cancel_event.is_set():
                    logger.debug(f"Cancelled, skipping remaining probes for host {self.host}")
                    return
                samples = self._run_probe(probe)
                if samples is None:
                    continue
                if not self._emit(samples):
                    return

    def _run_probe(self, probe: AbstractProbe) -> Optional[List[MetricSample]]:
        logger.debug(f"Running probe {probe.describe()} for host {self.host}")
        try:
            samples = probe.run(self.cancel_event)
        except Exception as e:
            self.probes_failed += 1
            if self.cancel_event.is_set():
                logger.debug(f"Probe {probe.describe()} for host {self.host} aborted: {e}")
            else:
                logger.warning(
                    f"Probe failed host_id:{self.host.id} host_name:{self.host.name} "
                    f"probe:{probe.describe()}: {e}"
                )
            return None
        self.probes_succeeded += 1
        return samples

    def _emit(self, samples: List[MetricSample]) -> bool:
        """
        Put samples on the queue, waiting while it is full.

        Returns:
            False if cancellation forced the remaining samples to be dropped.
        """
        for index, sample in enumerate(samples):
            if not self._put(sample):
                dropped = len(samples) - index
                self.samples_dropped += dropped
                logger.warning(
                    f"Shutting down with a full metric queue, dropped {dropped} "
                    f"samples for host {self.host}"
                )
                return False
            self.samples_emitted += 1
        return True

    def _put(self, sample: MetricSample) -> bool:
        while True:
            try:
                self.metric_queue.put(sample, timeout=self.queue_timeout)
                return True
            except queue.Full:
                if self.cancel_event.is_set():
                    return False
