"""
Metric relay: workers that drain the metric queue towards the backend, or
dump it in probe-only mode.
"""

from .workers import DumpWorker, MetricWorker, RelayWorker

__all__ = [
    "DumpWorker",
    "MetricWorker",
    "RelayWorker",
]
