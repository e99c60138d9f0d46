"""
Defines the base structures and abstract class for probes.

This module provides:
- ProbeError: raised when a probe cannot produce a measurement.
- AbstractProbe: an abstract base class (ABC) that defines the interface for
  all concrete, host-bound probes (ping, tcp, http, command).
"""

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.host import Host
from ..models.metrics import MetricSample

logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """Raised when a probe fails to run, as opposed to measuring a failure."""


class AbstractProbe(ABC):
    """
    Abstract base class for concrete probes.

    A concrete probe is fully rendered for one host and lives for a single
    execution. An unreachable target is a valid measurement (for example
    ``check.ok = 0``); ProbeError is reserved for probes that could not run
    at all.
    """

    def __init__(self, host: Host):
        self.host = host

    @abstractmethod
    def run(self, cancel_event: threading.Event) -> List[MetricSample]:
        """
        Execute the probe once.

        Args:
            cancel_event: Set when the agent is shutting down; long-running
                          probes must abort promptly once it is set.

        Returns:
            The samples measured for ``self.host``.

        Raises:
            ProbeError: If the probe could not run or was cancelled.
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """Human-readable description used in log messages."""
        pass

    def __str__(self) -> str:
        return self.describe()

    def _sample(self, name: str, value: float, timestamp: Optional[float] = None) -> MetricSample:
        value = float(value)
        if not math.isfinite(value):
            raise ProbeError(f"non-finite value {value} for metric {name}")
        return MetricSample(
            host_id=self.host.id,
            name=name,
            value=value,
            timestamp=time.time() if timestamp is None else timestamp,
        )

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            raise ProbeError("cancelled")
