"""
Consumers of the metric queue.

This module implements the two workers that drain the queue filled by the
probe executors:
- RelayWorker: batches samples and posts them to the backend, retrying a
  failed batch until it is accepted
- DumpWorker: probe-only mode, writes each sample as a JSON line instead of
  posting it
"""

import json
import logging
import queue
import sys
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TextIO

from ..backend import AbstractBackend, BackendError
from ..models.metrics import MetricSample
from ..scheduling.ticker import Ticker

logger = logging.getLogger(__name__)

MIN_GET_TIMEOUT = 0.001


class MetricWorker(ABC):
    """
    Base class for a thread consuming the metric queue.

    The worker runs until ``stop`` is called. Stopping is graceful: samples
    already in the queue are drained and handed to ``_finish`` before the
    thread exits.
    """

    def __init__(self, metric_queue: "queue.Queue[MetricSample]", queue_timeout: float = 0.1):
        self.metric_queue = metric_queue
        self.queue_timeout = queue_timeout

        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.running = False

    @property
    def name(self) -> str:
        return type(self).__name__

    def start(self) -> None:
        """Start the worker thread."""
        if self.running:
            logger.warning(f"{self.name} already running")
            return

        self.running = True
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self.thread.start()
        logger.info(f"{self.name} started")

    def stop(self, timeout: float = 10.0) -> bool:
        """
        Stop the worker and wait for its final drain.

        Args:
            timeout: Seconds to wait for the thread to exit

        Returns:
            True if the thread exited within the timeout.
        """
        if not self.running:
            return True

        logger.info(f"Stopping {self.name}...")
        self.running = False
        self.stop_event.set()

        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"{self.name} did not stop within {timeout}s")
                return False
        logger.info(f"{self.name} stopped")
        return True

    def _run(self) -> None:
        try:
            self._loop()
            self._finish(self._drain())
        except Exception as e:
            logger.error(f"Fatal error in {self.name}: {e}", exc_info=True)

    def _drain(self) -> List[MetricSample]:
        drained = []
        while True:
            try:
                drained.append(self.metric_queue.get_nowait())
            except queue.Empty:
                return drained

    @abstractmethod
    def _loop(self) -> None:
        """Consume samples until ``stop_event`` is set."""
        pass

    @abstractmethod
    def _finish(self, remaining: List[MetricSample]) -> None:
        """Handle the samples left in the queue at shutdown."""
        pass


class RelayWorker(MetricWorker):
    """
    Batches samples and posts them to the backend.

    A flush is attempted when the batch reaches ``batch_size``, every
    ``flush_interval`` seconds, and once more at shutdown. A batch is cleared
    only after the backend accepted it; after a failure the worker waits
    ``retry_backoff`` seconds and keeps the batch, appending new samples to
    it until the next attempt succeeds.

    The batch is unbounded: a long backend outage grows it without limit.

    ``replace_backend`` hands over a new backend from another thread. The
    worker switches to it between posts and closes the previous one.
    """

    def __init__(
        self,
        metric_queue: "queue.Queue[MetricSample]",
        backend: AbstractBackend,
        batch_size: int = 100,
        flush_interval: float = 10.0,
        retry_backoff: float = 10.0,
        queue_timeout: float = 0.1,
    ):
        super().__init__(metric_queue, queue_timeout)
        self.backend = backend
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.retry_backoff = retry_backoff

        self.batch: List[MetricSample] = []
        self._pending_backend: Optional[AbstractBackend] = None
        self._backend_lock = threading.Lock()

        self.posts_succeeded = 0
        self.posts_failed = 0
        self.samples_posted = 0
        self.samples_abandoned = 0

    def _loop(self) -> None:
        ticker = Ticker(self.flush_interval)
        while not self.stop_event.is_set():
            try:
                # Never block past the next flush tick.
                timeout = max(MIN_GET_TIMEOUT, min(self.queue_timeout, ticker.remaining()))
                self.batch.append(self.metric_queue.get(timeout=timeout))
            except queue.Empty:
                pass

            if ticker.poll() or len(self.batch) >= self.batch_size:
                if not self.flush() and not self.stop_event.is_set():
                    self.stop_event.wait(self.retry_backoff)

    def _finish(self, remaining: List[MetricSample]) -> None:
        self.batch.extend(remaining)
        if not self.flush():
            self.samples_abandoned = len(self.batch)
            logger.error(f"Final flush failed, abandoning {self.samples_abandoned} samples")

    def flush(self) -> bool:
        """
        Post the current batch.

        Returns:
            True if the batch is empty or was accepted, False if it was kept
            for a retry.
        """
        self._adopt_pending_backend()
        if not self.batch:
            return True

        count = len(self.batch)
        logger.debug(f"Posting {count} metrics")
        try:
            self.backend.post_metrics([sample.to_wire() for sample in self.batch])
        except BackendError as e:
            self.posts_failed += 1
            logger.error(f"Failed to post {count} metrics, keeping them for retry: {e}")
            return False
        except Exception as e:
            self.posts_failed += 1
            logger.error(
                f"Unexpected error posting {count} metrics, keeping them for retry: {e}",
                exc_info=True,
            )
            return False

        self.posts_succeeded += 1
        self.samples_posted += count
        self.batch.clear()
        logger.debug("Post succeeded")
        return True

    def replace_backend(self, backend: AbstractBackend) -> None:
        """
        Switch to ``backend`` at the next flush.

        The current backend stays in use for a post already in progress and is
        closed by the worker once replaced.
        """
        with self._backend_lock:
            superseded, self._pending_backend = self._pending_backend, backend
        if superseded is not None:
            superseded.close()

    def _adopt_pending_backend(self) -> None:
        with self._backend_lock:
            backend, self._pending_backend = self._pending_backend, None
        if backend is None:
            return
        old_backend, self.backend = self.backend, backend
        logger.info("Switched to the new backend")
        old_backend.close()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "posts_succeeded": self.posts_succeeded,
            "posts_failed": self.posts_failed,
            "samples_posted": self.samples_posted,
            "samples_abandoned": self.samples_abandoned,
            "pending": len(self.batch),
        }


class DumpWorker(MetricWorker):
    """
    Probe-only consumer: writes each sample as one JSON line, in dequeue
    order. Nothing is posted to a backend.
    """

    def __init__(
        self,
        metric_queue: "queue.Queue[MetricSample]",
        output: Optional[TextIO] = None,
        queue_timeout: float = 0.1,
    ):
        super().__init__(metric_queue, queue_timeout)
        self.output = output if output is not None else sys.stdout
        self.samples_dumped = 0

    def _loop(self) -> None:
        while not self.stop_event.is_set():
            try:
                sample = self.metric_queue.get(timeout=self.queue_timeout)
            except queue.Empty:
                continue
            self.dump(sample)

    def _finish(self, remaining: List[MetricSample]) -> None:
        for sample in remaining:
            self.dump(sample)

    def dump(self, sample: MetricSample) -> None:
        line = json.dumps(sample.to_wire())
        self.output.write(line + "\n")
        self.output.flush()
        self.samples_dumped += 1
        logger.debug(line)
