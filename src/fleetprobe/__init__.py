"""
fleetprobe: external probing agent for a fleet of monitored hosts.

The agent periodically discovers hosts from the monitoring backend, runs
ping / TCP / HTTP / command probes against each of them under a global
concurrency cap, and relays the measured samples to the backend in batches.

The package is organized into specialized modules:
- config: Configuration loading and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Subprocess execution and process-tree termination
- probes: Concrete probes and their generation from definitions
- backend: Monitoring backend clients
- executor: Concurrency throttle and per-host probe execution
- scheduling: Tick source and per-definition host fan-out
- relay: Metric queue consumers (relay and probe-only dump)
- orchestration: The tick loop and signal handling
- cli: Command-line interface

Usage:
    From command line:
        fleetprobe agent -c config.toml

    Programmatically:
        from fleetprobe import Orchestrator
        Orchestrator("config.toml").run()
"""

__version__ = "0.1.0"

# Main interfaces
from .config import load_config
from .orchestration import Orchestrator, OrchestratorState, SignalHandler
from .cli import main_cli

# Model classes for external use
from .models import (
    AgentConfig,
    AppConfig,
    BackendConfig,
    Host,
    MetricSample,
    ProbeDefinition,
)

# Pipeline components
from .backend import AbstractBackend, BackendError, MackerelClient
from .executor import ConcurrencyThrottle, ProbeExecutor
from .probes import AbstractProbe, ProbeError, generate_probes
from .relay import DumpWorker, RelayWorker
from .scheduling import HostFanoutScheduler, Ticker

# Validation utilities
from .validation import ValidationError

__all__ = [
    "__version__",
    # Main interfaces
    "load_config",
    "Orchestrator",
    "OrchestratorState",
    "SignalHandler",
    "main_cli",
    # Models
    "AgentConfig",
    "AppConfig",
    "BackendConfig",
    "Host",
    "MetricSample",
    "ProbeDefinition",
    # Pipeline
    "AbstractBackend",
    "BackendError",
    "MackerelClient",
    "ConcurrencyThrottle",
    "ProbeExecutor",
    "AbstractProbe",
    "ProbeError",
    "generate_probes",
    "DumpWorker",
    "RelayWorker",
    "HostFanoutScheduler",
    "Ticker",
    # Validation
    "ValidationError",
]
