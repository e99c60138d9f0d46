"""
Host discovery and paced fan-out of probe executors for one definition.
"""

import logging
import queue
import threading
from typing import List, Optional

from ..backend import AbstractBackend, BackendError
from ..executor import ConcurrencyThrottle, ProbeExecutor
from ..executor.probe_executor import ProbeGenerator
from ..models.config import ProbeDefinition
from ..models.metrics import MetricSample

logger = logging.getLogger(__name__)

# Upper bound on the pause between two executor launches, in seconds.
MAX_SPAWN_INTERVAL = 1.0


def spawn_interval(probe_interval: float, host_count: int) -> float:
    """Pause before each launch: half the interval spread over the hosts, at most 1s."""
    if host_count <= 0:
        return 0.0
    return min(MAX_SPAWN_INTERVAL, probe_interval / host_count / 2)


class HostFanoutScheduler:
    """
    Discovers the hosts of one probe definition and runs a ProbeExecutor for
    each of them.

    Launches are spread out so that a large fleet does not start all of its
    probes in the same instant. Each executor runs on its own thread; the
    scheduler returns once every launched executor has finished.
    """

    def __init__(
        self,
        definition: ProbeDefinition,
        backend: AbstractBackend,
        metric_queue: "queue.Queue[MetricSample]",
        throttle: ConcurrencyThrottle,
        cancel_event: threading.Event,
        probe_interval: float,
        probe_generator: Optional[ProbeGenerator] = None,
        queue_timeout: float = 0.1,
    ):
        self.definition = definition
        self.backend = backend
        self.metric_queue = metric_queue
        self.throttle = throttle
        self.cancel_event = cancel_event
        self.probe_interval = probe_interval
        self.probe_generator = probe_generator
        self.queue_timeout = queue_timeout
        self.executors: List[ProbeExecutor] = []

    def run(self) -> int:
        """
        Discover hosts, launch one executor per host and wait for all of them.

        Returns:
            The number of executors launched. Zero when discovery failed,
            found no host, or cancellation came before the first launch.
        """
        logger.debug(f"Finding hosts {self.definition}")
        try:
            hosts = self.backend.find_hosts(self.definition.service, self.definition.roles)
        except BackendError as e:
            logger.error(f"Host discovery failed for {self.definition}: {e}")
            return 0
        logger.debug(f"{len(hosts)} hosts found for {self.definition}")
        if not hosts:
            return 0

        delay = spawn_interval(self.probe_interval, len(hosts))
        threads: List[threading.Thread] = []
        for host in hosts:
            if self.cancel_event.wait(delay):
                logger.debug(
                    f"Cancelled after launching {len(threads)}/{len(hosts)} executors "
                    f"for {self.definition}"
                )
                break
            logger.debug(f"Preparing host {host}")
            executor = ProbeExecutor(
                self.definition,
                host,
                self.metric_queue,
                self.throttle,
                self.cancel_event,
                probe_generator=self.probe_generator,
                queue_timeout=self.queue_timeout,
            )
            thread = threading.Thread(
                target=executor.run,
                name=f"ProbeExecutor-{host.id}",
                daemon=True,
            )
            self.executors.append(executor)
            threads.append(thread)
            thread.start()

        for thread in threads:
            thread.join()
        return len(threads)
