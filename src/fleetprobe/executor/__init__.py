"""
Probe execution for the fleetprobe package.

This module provides the process-wide concurrency throttle and the executor
that runs the probe set of one host under it.
"""

from .probe_executor import ProbeExecutor
from .throttle import ConcurrencyThrottle

__all__ = [
    "ConcurrencyThrottle",
    "ProbeExecutor",
]
