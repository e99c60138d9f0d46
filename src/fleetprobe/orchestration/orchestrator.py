"""
The agent's tick loop.

This module implements the Orchestrator, which owns every long-lived object of
a running agent (configuration snapshot, backend client, metric queue,
concurrency throttle and relay/dump worker) and drives the periodic cycle:

    IDLE -> PROBING -> WAITING -> RELOAD_CHECK -> IDLE
                          |
                          +-> CANCELLED

Each tick probes every definition of the current configuration snapshot, then
waits for the next tick and re-reads the configuration file. A changed
configuration replaces the snapshot as a whole between ticks, never while a
tick is running.
"""

import dataclasses
import logging
import queue
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Union

from ..backend import AbstractBackend, create_backend
from ..config import load_config
from ..executor import ConcurrencyThrottle
from ..executor.probe_executor import ProbeGenerator
from ..models.config import AppConfig
from ..models.metrics import MetricSample
from ..relay import DumpWorker, MetricWorker, RelayWorker
from ..scheduling import HostFanoutScheduler, Ticker

logger = logging.getLogger(__name__)

ConfigLoader = Callable[[Union[str, Path]], AppConfig]
BackendFactory = Callable[[AppConfig], AbstractBackend]


class OrchestratorState(Enum):
    """States of the tick loop."""
    IDLE = "idle"
    PROBING = "probing"
    WAITING = "waiting"
    RELOAD_CHECK = "reload_check"
    CANCELLED = "cancelled"


class Orchestrator:
    """
    Runs the probe / relay pipeline until cancelled.

    Tunables (the ``[agent]`` and ``[backend]`` sections and ``probe_only``)
    are bound once at startup. A reload that changes them logs a warning and
    only its probe definitions and API key are applied.

    Args:
        config_path: Path of the TOML configuration file
        cancel_event: Process-wide cancellation signal; created if omitted
        config_loader: Callable loading an AppConfig from ``config_path``
        backend_factory: Callable building the backend from an AppConfig
        probe_generator: Override of ``generate_probes``, used by tests
        dump_output: Stream for probe-only mode, stdout by default
        clock: Monotonic clock driving the tick grid
    """

    def __init__(
        self,
        config_path: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
        config_loader: ConfigLoader = load_config,
        backend_factory: BackendFactory = create_backend,
        probe_generator: Optional[ProbeGenerator] = None,
        dump_output: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config_path = config_path
        self.cancel_event = cancel_event or threading.Event()
        self.config_loader = config_loader
        self.backend_factory = backend_factory
        self.probe_generator = probe_generator
        self.dump_output = dump_output
        self.clock = clock

        self.state = OrchestratorState.IDLE
        # Active snapshot, and the snapshot as last read from the file.
        self.config: Optional[AppConfig] = None
        self._loaded_config: Optional[AppConfig] = None

        self.backend: Optional[AbstractBackend] = None
        self.metric_queue: Optional["queue.Queue[MetricSample]"] = None
        self.throttle: Optional[ConcurrencyThrottle] = None
        self.worker: Optional[MetricWorker] = None

        self.ticks = 0
        self.reloads = 0

    def request_shutdown(self) -> None:
        """Ask the loop to stop at the next suspension point."""
        self.cancel_event.set()

    def start(self) -> None:
        """
        Load the configuration and bring up the backend, queue, throttle and
        worker.

        Raises:
            FileNotFoundError: If the configuration file is missing
            tomllib.TOMLDecodeError: If it cannot be parsed
            ValidationError: If it is invalid
        """
        logger.info("Starting fleetprobe")
        self.config = self.config_loader(self.config_path)
        self._loaded_config = self.config
        logger.debug(f"Configuration: {self.config}")
        agent = self.config.agent

        self.backend = self.backend_factory(self.config)
        self.metric_queue = queue.Queue(maxsize=agent.queue_size)
        self.throttle = ConcurrencyThrottle(agent.max_concurrency)
        self.worker = self._create_worker(self.config)
        self.worker.start()

    def run(self) -> None:
        """
        Start up and run the tick loop until the cancel event is set.

        Startup errors propagate before the first tick; see ``start``. Whatever
        was brought up before the error is shut down again.
        """
        try:
            self.start()
            ticker = Ticker(self.config.agent.probe_interval, clock=self.clock)
            while True:
                self._set_state(OrchestratorState.PROBING)
                self.run_tick()

                self._set_state(OrchestratorState.WAITING)
                logger.debug("Waiting for the next tick")
                if not ticker.wait(self.cancel_event):
                    self._set_state(OrchestratorState.CANCELLED)
                    logger.info("Stopping fleetprobe")
                    return

                self._set_state(OrchestratorState.RELOAD_CHECK)
                self.reload()
                self._set_state(OrchestratorState.IDLE)
        finally:
            self.shutdown()

    def run_tick(self) -> int:
        """
        Probe every definition of the current snapshot concurrently.

        Returns:
            The number of probe executors launched during the tick.
        """
        config = self.config
        backend = self.backend
        self.ticks += 1

        schedulers: List[HostFanoutScheduler] = []
        threads: List[threading.Thread] = []
        for index, definition in enumerate(config.probes):
            scheduler = HostFanoutScheduler(
                definition,
                backend,
                self.metric_queue,
                self.throttle,
                self.cancel_event,
                probe_interval=config.agent.probe_interval,
                probe_generator=self.probe_generator,
                queue_timeout=config.agent.queue_timeout,
            )
            thread = threading.Thread(
                target=scheduler.run, name=f"HostFanout-{index}", daemon=True
            )
            schedulers.append(scheduler)
            threads.append(thread)
            thread.start()

        for thread in threads:
            thread.join()

        launched = sum(len(s.executors) for s in schedulers)
        failed = sum(e.probes_failed for s in schedulers for e in s.executors)
        logger.debug(
            f"Tick {self.ticks} finished: {launched} hosts probed, {failed} probes failed"
        )
        return launched

    def reload(self) -> bool:
        """
        Re-read the configuration file and swap the snapshot if it changed.

        Returns:
            True if a new snapshot was installed.
        """
        logger.debug("Checking for a new config")
        try:
            new_config = self.config_loader(self.config_path)
        except Exception as e:
            logger.warning(f"Failed to reload config: {e}")
            logger.warning("Still using the current config")
            return False

        if new_config.is_equivalent(self._loaded_config):
            return False
        self._loaded_config = new_config

        sections = self.config.restart_required_sections(new_config)
        if sections:
            logger.warning(
                f"Changes to {', '.join(sections)} require a restart; "
                f"applying probe definitions and api_key only"
            )
            new_config = dataclasses.replace(
                new_config,
                probe_only=self.config.probe_only,
                agent=self.config.agent,
                backend=self.config.backend,
            )
        if new_config.is_equivalent(self.config):
            return False

        if new_config.api_key != self.config.api_key:
            self._replace_backend(new_config)
        self.config = new_config
        self.reloads += 1
        logger.info("Config reloaded")
        logger.debug(f"Configuration: {self.config}")
        return True

    def _replace_backend(self, config: AppConfig) -> None:
        old_backend = self.backend
        self.backend = self.backend_factory(config)
        if isinstance(self.worker, RelayWorker):
            # The worker closes the old backend after its current post.
            self.worker.replace_backend(self.backend)
        else:
            old_backend.close()

    def _create_worker(self, config: AppConfig) -> MetricWorker:
        agent = config.agent
        if config.probe_only:
            return DumpWorker(
                self.metric_queue, output=self.dump_output, queue_timeout=agent.queue_timeout
            )
        return RelayWorker(
            self.metric_queue,
            self.backend,
            batch_size=agent.batch_size,
            flush_interval=agent.flush_interval,
            retry_backoff=agent.retry_backoff,
            queue_timeout=agent.queue_timeout,
        )

    def shutdown(self) -> None:
        """Stop the worker (final flush) and close the backend."""
        if self.worker is not None:
            self.worker.stop(timeout=self.config.agent.shutdown_timeout)
            self.worker = None
        if self.backend is not None:
            self.backend.close()
            self.backend = None

    def _set_state(self, state: OrchestratorState) -> None:
        logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state
