"""
Factory for creating concrete probes from probe definitions.

Every string field of a probe sub-definition is a Jinja2 template rendered
against the target host, e.g. ``"{{ host.ip_addresses.eth0 }}"``. Undefined
variables are errors so a typo never produces a probe against an empty
address.
"""

import dataclasses
import logging
from typing import Any, Dict, List

from jinja2 import Environment, StrictUndefined, TemplateError

from ..models.config import (
    CommandProbeDefinition,
    HttpProbeDefinition,
    PingProbeDefinition,
    ProbeDefinition,
    TcpProbeDefinition,
)
from ..models.host import Host
from .base import AbstractProbe
from .command import CommandProbe
from .http import HttpProbe
from .ping import PingProbe
from .tcp import TcpProbe

logger = logging.getLogger(__name__)

_environment = Environment(undefined=StrictUndefined, autoescape=False)


def render_template(template: str, host: Host) -> str:
    """
    Render one template string for ``host``.

    Raises:
        jinja2.TemplateError: On syntax errors or undefined variables.
    """
    if "{" not in template:
        return template
    return _environment.from_string(template).render(host=host)


def _render_fields(sub_definition: Any, host: Host) -> Dict[str, Any]:
    rendered = {}
    for f in dataclasses.fields(sub_definition):
        value = getattr(sub_definition, f.name)
        if isinstance(value, str):
            value = render_template(value, host)
        elif f.name == "headers":
            value = tuple(
                (render_template(name, host), render_template(header, host))
                for name, header in value
            )
        rendered[f.name] = value
    return rendered


def _create_ping(sub_definition: PingProbeDefinition, host: Host) -> AbstractProbe:
    return PingProbe(host, **_render_fields(sub_definition, host))


def _create_tcp(sub_definition: TcpProbeDefinition, host: Host) -> AbstractProbe:
    fields = _render_fields(sub_definition, host)
    fields["address"] = fields.pop("host")
    return TcpProbe(host, **fields)


def _create_http(sub_definition: HttpProbeDefinition, host: Host) -> AbstractProbe:
    return HttpProbe(host, **_render_fields(sub_definition, host))


def _create_command(sub_definition: CommandProbeDefinition, host: Host) -> AbstractProbe:
    return CommandProbe(host, **_render_fields(sub_definition, host))


_CREATORS = (
    ("ping", _create_ping),
    ("tcp", _create_tcp),
    ("http", _create_http),
    ("command", _create_command),
)


def generate_probes(definition: ProbeDefinition, host: Host) -> List[AbstractProbe]:
    """
    Render every probe kind configured in ``definition`` for ``host``.

    A kind whose templates fail to render is logged and skipped; the other
    kinds are still returned.

    Args:
        definition: The probe definition the host was discovered for.
        host: The target host.

    Returns:
        Concrete probes in the order ping, tcp, http, command.
    """
    probes: List[AbstractProbe] = []
    for kind, create in _CREATORS:
        sub_definition = getattr(definition, kind)
        if sub_definition is None:
            continue
        try:
            probes.append(create(sub_definition, host))
        except TemplateError as e:
            logger.warning(
                f"Cannot render {kind} probe for host {host} ({definition}): {e}"
            )
    return probes
