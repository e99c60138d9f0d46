"""
Scheduling of probe runs: the periodic ticker and the per-definition host
fan-out.
"""

from .fanout import HostFanoutScheduler, spawn_interval
from .ticker import Ticker

__all__ = [
    "HostFanoutScheduler",
    "Ticker",
    "spawn_interval",
]
