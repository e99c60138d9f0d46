"""
Metric sample data model.

A MetricSample is the unit that flows from probe executors, through the
bounded metric queue, to the relay worker.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class MetricSample:
    """
    One measurement produced by a probe.

    Attributes:
        host_id: Backend id of the host the measurement belongs to
        name: Metric name (e.g. "http.response_time.seconds")
        value: Numeric value
        timestamp: Epoch seconds at which the measurement was taken
    """

    host_id: str
    name: str
    value: float
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        # The backend only accepts JSON-compliant numbers.
        if not (math.isfinite(self.value) and math.isfinite(self.timestamp)):
            raise ValueError(
                f"metric {self.name} has a non-finite value or timestamp: "
                f"{self.value}, {self.timestamp}"
            )

    def to_wire(self) -> Dict[str, Any]:
        """Return the backend's JSON representation of this sample."""
        return {
            "hostId": self.host_id,
            "name": self.name,
            "time": int(self.timestamp),
            "value": self.value,
        }
