"""
Orchestration of a running agent.

This module provides the tick-loop orchestrator and the signal handling that
drives its graceful shutdown.
"""

from .orchestrator import Orchestrator, OrchestratorState
from .signal_handler import SignalHandler

__all__ = [
    "Orchestrator",
    "OrchestratorState",
    "SignalHandler",
]
