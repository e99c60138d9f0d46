"""
Probes executed against discovered hosts.

Concrete probes:
- PingProbe: ICMP echo through the system ``ping`` command
- TcpProbe: TCP/TLS connect with optional send / expect / quit exchange
- HttpProbe: HTTP request check
- CommandProbe: external command in Mackerel plugin output format

``generate_probes`` renders a probe definition for one host.
"""

from .base import AbstractProbe, ProbeError
from .command import CommandProbe
from .factory import generate_probes, render_template
from .http import HttpProbe
from .ping import PingProbe, parse_ping_output
from .tcp import TcpProbe

__all__ = [
    "AbstractProbe",
    "ProbeError",
    "CommandProbe",
    "HttpProbe",
    "PingProbe",
    "TcpProbe",
    "generate_probes",
    "parse_ping_output",
    "render_template",
]
