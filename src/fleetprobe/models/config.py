"""
Configuration data models.

This module contains the configuration structures for probe definitions,
agent tunables, the backend connection, and the root application
configuration. Every model is a frozen dataclass: a loaded configuration is
never mutated, only replaced as a whole on reload.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class AgentConfig:
    """
    Process-wide tunables, loaded from the ``[agent]`` table.

    These are bound once at startup; a reload that changes them only logs a
    warning.
    """

    # Maximum number of hosts being probed at the same time.
    max_concurrency: int = 100
    # The metric queue holds batch_size * buffer_multiplier samples.
    buffer_multiplier: int = 10
    # Seconds between two ticks of the probing loop.
    probe_interval: float = 60.0
    # Seconds between two time-triggered flushes of the relay batch.
    flush_interval: float = 10.0
    # A batch is flushed as soon as it holds this many samples.
    batch_size: int = 100
    # Seconds to wait after a failed submission.
    retry_backoff: float = 10.0
    # Poll granularity of blocking queue operations, in seconds.
    queue_timeout: float = 0.1
    # Seconds to wait for the relay worker to finish its final flush.
    shutdown_timeout: float = 10.0

    @property
    def queue_size(self) -> int:
        """Capacity of the metric queue."""
        return self.batch_size * self.buffer_multiplier


@dataclass(frozen=True)
class BackendConfig:
    """Connection settings for the monitoring backend (``[backend]`` table)."""

    base_url: str = "https://api.mackerelio.com"
    timeout: float = 30.0


@dataclass(frozen=True)
class PingProbeDefinition:
    """ICMP echo probe, run through the system ``ping`` command."""

    address: str
    count: int = 3
    timeout: float = 1.0
    metric_key_prefix: str = "ping"


@dataclass(frozen=True)
class TcpProbeDefinition:
    """TCP connect probe with optional send / expect / quit exchange."""

    host: str
    port: str
    timeout: float = 5.0
    send: str = ""
    quit: str = ""
    expect_pattern: str = ""
    tls: bool = False
    no_check_certificate: bool = False
    metric_key_prefix: str = "tcp"


@dataclass(frozen=True)
class HttpProbeDefinition:
    """HTTP request probe."""

    url: str
    method: str = "GET"
    # (name, value) pairs, kept as a tuple so the definition stays immutable.
    headers: Tuple[Tuple[str, str], ...] = ()
    body: str = ""
    expect_pattern: str = ""
    timeout: float = 15.0
    no_check_certificate: bool = False
    metric_key_prefix: str = "http"


@dataclass(frozen=True)
class CommandProbeDefinition:
    """External command printing metrics in ``name<TAB>value<TAB>epoch`` lines."""

    command: str
    timeout: float = 15.0


@dataclass(frozen=True)
class ProbeDefinition:
    """
    One ``[[probes]]`` entry: which hosts to target and what to run on them.

    String fields of the probe sub-definitions are Jinja2 templates rendered
    against each discovered host.
    """

    service: str
    roles: Tuple[str, ...] = ()
    ping: Optional[PingProbeDefinition] = None
    tcp: Optional[TcpProbeDefinition] = None
    http: Optional[HttpProbeDefinition] = None
    command: Optional[CommandProbeDefinition] = None

    def __str__(self) -> str:
        return f"service:{self.service} roles:{list(self.roles)}"


@dataclass(frozen=True)
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    # API key for the monitoring backend; never printed.
    api_key: str = field(repr=False)
    # Dump samples instead of posting them to the backend.
    probe_only: bool = False
    agent: AgentConfig = field(default_factory=AgentConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    # Probe definitions, in file order.
    probes: Tuple[ProbeDefinition, ...] = ()

    def is_equivalent(self, other: "AppConfig") -> bool:
        """
        Structural equality used by the reload check.

        Two configurations are equivalent when every section compares equal
        field by field; a reload producing an equivalent configuration is not
        a change.
        """
        if not isinstance(other, AppConfig):
            return False
        return (
            self.api_key == other.api_key
            and self.probe_only == other.probe_only
            and self.agent == other.agent
            and self.backend == other.backend
            and self.probes == other.probes
        )

    def restart_required_sections(self, other: "AppConfig") -> List[str]:
        """Names of the sections of ``other`` that only take effect after a restart."""
        sections = []
        if self.probe_only != other.probe_only:
            sections.append("probe_only")
        if self.agent != other.agent:
            sections.append("agent")
        if self.backend != other.backend:
            sections.append("backend")
        return sections
