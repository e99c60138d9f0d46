"""
Data models for the probing agent.

Configuration Models:
- Agent tunables and backend connection settings
- Probe definitions with per-kind probe templates
- The root application configuration

Runtime Models:
- Hosts discovered from the backend
- Metric samples produced by probes
"""

from .config import (
    AgentConfig,
    AppConfig,
    BackendConfig,
    CommandProbeDefinition,
    HttpProbeDefinition,
    PingProbeDefinition,
    ProbeDefinition,
    TcpProbeDefinition,
)
from .host import Host
from .metrics import MetricSample

__all__ = [
    # Configuration
    "AgentConfig",
    "AppConfig",
    "BackendConfig",
    "CommandProbeDefinition",
    "HttpProbeDefinition",
    "PingProbeDefinition",
    "ProbeDefinition",
    "TcpProbeDefinition",
    # Runtime
    "Host",
    "MetricSample",
]
