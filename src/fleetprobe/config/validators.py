"""
Configuration validation utilities.

This module turns the raw dictionaries parsed from TOML into the frozen
configuration models, validating every field on the way.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..models.config import (
    AgentConfig,
    BackendConfig,
    CommandProbeDefinition,
    HttpProbeDefinition,
    PingProbeDefinition,
    ProbeDefinition,
    TcpProbeDefinition,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_enum_choice,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

PROBE_KINDS = ("ping", "tcp", "http", "command")


def _require_table(value: Any, field_name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(
            f"{field_name} must be a table", field_name=field_name, value=value
        )
    return value


def _reject_unknown_keys(data: Dict[str, Any], allowed: Tuple[str, ...], field_name: str) -> None:
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(
            f"{field_name} has unknown keys: {unknown}",
            field_name=field_name,
            value=unknown,
        )


def validate_agent_config(agent_data: Dict[str, Any]) -> AgentConfig:
    """
    Validate and create an AgentConfig from the ``[agent]`` table.

    Missing keys fall back to the AgentConfig defaults.

    Raises:
        ValidationError: If validation fails
    """
    agent_data = _require_table(agent_data, "agent")
    defaults = AgentConfig()
    _reject_unknown_keys(
        agent_data,
        (
            "max_concurrency", "buffer_multiplier", "probe_interval",
            "flush_interval", "batch_size", "retry_backoff",
            "queue_timeout", "shutdown_timeout",
        ),
        "agent",
    )

    return AgentConfig(
        max_concurrency=validate_positive_integer(
            agent_data.get("max_concurrency", defaults.max_concurrency),
            min_value=1,
            max_value=10000,
            field_name="agent.max_concurrency",
        ),
        buffer_multiplier=validate_positive_integer(
            agent_data.get("buffer_multiplier", defaults.buffer_multiplier),
            min_value=1,
            max_value=1000,
            field_name="agent.buffer_multiplier",
        ),
        probe_interval=validate_positive_float(
            agent_data.get("probe_interval", defaults.probe_interval),
            min_value=0.01,
            max_value=86400.0,
            field_name="agent.probe_interval",
        ),
        flush_interval=validate_positive_float(
            agent_data.get("flush_interval", defaults.flush_interval),
            min_value=0.01,
            max_value=3600.0,
            field_name="agent.flush_interval",
        ),
        batch_size=validate_positive_integer(
            agent_data.get("batch_size", defaults.batch_size),
            min_value=1,
            max_value=100000,
            field_name="agent.batch_size",
        ),
        retry_backoff=validate_positive_float(
            agent_data.get("retry_backoff", defaults.retry_backoff),
            min_value=0.0,
            max_value=3600.0,
            field_name="agent.retry_backoff",
        ),
        queue_timeout=validate_positive_float(
            agent_data.get("queue_timeout", defaults.queue_timeout),
            min_value=0.001,
            max_value=10.0,
            field_name="agent.queue_timeout",
        ),
        shutdown_timeout=validate_positive_float(
            agent_data.get("shutdown_timeout", defaults.shutdown_timeout),
            min_value=0.0,
            max_value=600.0,
            field_name="agent.shutdown_timeout",
        ),
    )


def validate_backend_config(backend_data: Dict[str, Any]) -> BackendConfig:
    """
    Validate and create a BackendConfig from the ``[backend]`` table.

    Raises:
        ValidationError: If validation fails
    """
    backend_data = _require_table(backend_data, "backend")
    defaults = BackendConfig()
    _reject_unknown_keys(backend_data, ("base_url", "timeout"), "backend")

    base_url = validate_non_empty_string(
        backend_data.get("base_url", defaults.base_url),
        field_name="backend.base_url",
    )
    if not base_url.startswith(("http://", "https://")):
        raise ValidationError(
            "backend.base_url must be an http(s) URL",
            field_name="backend.base_url",
            value=base_url,
        )

    return BackendConfig(
        base_url=base_url.rstrip("/"),
        timeout=validate_positive_float(
            backend_data.get("timeout", defaults.timeout),
            min_value=0.1,
            max_value=600.0,
            field_name="backend.timeout",
        ),
    )


def _validate_ping(data: Dict[str, Any], prefix: str) -> PingProbeDefinition:
    _reject_unknown_keys(data, ("address", "count", "timeout", "metric_key_prefix"), prefix)
    return PingProbeDefinition(
        address=validate_non_empty_string(data.get("address"), field_name=f"{prefix}.address"),
        count=validate_positive_integer(
            data.get("count", 3), min_value=1, max_value=100, field_name=f"{prefix}.count"
        ),
        timeout=validate_positive_float(
            data.get("timeout", 1.0), min_value=0.1, max_value=60.0, field_name=f"{prefix}.timeout"
        ),
        metric_key_prefix=validate_non_empty_string(
            data.get("metric_key_prefix", "ping"), field_name=f"{prefix}.metric_key_prefix"
        ),
    )


def _validate_tcp(data: Dict[str, Any], prefix: str) -> TcpProbeDefinition:
    _reject_unknown_keys(
        data,
        ("host", "port", "timeout", "send", "quit", "expect_pattern",
         "tls", "no_check_certificate", "metric_key_prefix"),
        prefix,
    )
    port = data.get("port")
    if isinstance(port, int) and not isinstance(port, bool):
        port = str(validate_positive_integer(
            port, min_value=1, max_value=65535, field_name=f"{prefix}.port"
        ))
    expect_pattern = data.get("expect_pattern", "")
    if expect_pattern:
        validate_regex_pattern(expect_pattern, field_name=f"{prefix}.expect_pattern")

    return TcpProbeDefinition(
        host=validate_non_empty_string(data.get("host"), field_name=f"{prefix}.host"),
        port=validate_non_empty_string(port, field_name=f"{prefix}.port"),
        timeout=validate_positive_float(
            data.get("timeout", 5.0), min_value=0.1, max_value=300.0, field_name=f"{prefix}.timeout"
        ),
        send=str(data.get("send", "")),
        quit=str(data.get("quit", "")),
        expect_pattern=expect_pattern,
        tls=validate_boolean(data.get("tls", False), field_name=f"{prefix}.tls"),
        no_check_certificate=validate_boolean(
            data.get("no_check_certificate", False), field_name=f"{prefix}.no_check_certificate"
        ),
        metric_key_prefix=validate_non_empty_string(
            data.get("metric_key_prefix", "tcp"), field_name=f"{prefix}.metric_key_prefix"
        ),
    )


def _validate_http(data: Dict[str, Any], prefix: str) -> HttpProbeDefinition:
    _reject_unknown_keys(
        data,
        ("url", "method", "headers", "body", "expect_pattern", "timeout",
         "no_check_certificate", "metric_key_prefix"),
        prefix,
    )
    headers = _require_table(data.get("headers", {}), f"{prefix}.headers")
    expect_pattern = data.get("expect_pattern", "")
    if expect_pattern:
        validate_regex_pattern(expect_pattern, field_name=f"{prefix}.expect_pattern")

    return HttpProbeDefinition(
        url=validate_non_empty_string(data.get("url"), field_name=f"{prefix}.url"),
        method=validate_enum_choice(
            data.get("method", "GET"),
            choices=HTTP_METHODS,
            field_name=f"{prefix}.method",
            case_sensitive=False,
        ),
        headers=tuple(
            (str(name), str(value)) for name, value in sorted(headers.items())
        ),
        body=str(data.get("body", "")),
        expect_pattern=expect_pattern,
        timeout=validate_positive_float(
            data.get("timeout", 15.0), min_value=0.1, max_value=300.0, field_name=f"{prefix}.timeout"
        ),
        no_check_certificate=validate_boolean(
            data.get("no_check_certificate", False), field_name=f"{prefix}.no_check_certificate"
        ),
        metric_key_prefix=validate_non_empty_string(
            data.get("metric_key_prefix", "http"), field_name=f"{prefix}.metric_key_prefix"
        ),
    )


def _validate_command(data: Dict[str, Any], prefix: str) -> CommandProbeDefinition:
    _reject_unknown_keys(data, ("command", "timeout"), prefix)
    return CommandProbeDefinition(
        command=validate_non_empty_string(data.get("command"), field_name=f"{prefix}.command"),
        timeout=validate_positive_float(
            data.get("timeout", 15.0), min_value=0.1, max_value=3600.0, field_name=f"{prefix}.timeout"
        ),
    )


def validate_probe_definition(probe_data: Dict[str, Any], index: int) -> ProbeDefinition:
    """
    Validate one ``[[probes]]`` entry.

    ``role`` is accepted as an alias of ``roles``. At least one probe kind must
    be configured.

    Raises:
        ValidationError: If validation fails
    """
    prefix = f"probes[{index}]"
    probe_data = _require_table(probe_data, prefix)
    _reject_unknown_keys(probe_data, ("service", "roles", "role") + PROBE_KINDS, prefix)

    service = validate_non_empty_string(probe_data.get("service"), field_name=f"{prefix}.service")
    raw_roles = probe_data.get("roles", probe_data.get("role", []))
    roles = validate_string_list(raw_roles, field_name=f"{prefix}.roles")

    sub_definitions: Dict[str, Optional[Any]] = {}
    validators = {
        "ping": _validate_ping,
        "tcp": _validate_tcp,
        "http": _validate_http,
        "command": _validate_command,
    }
    for kind in PROBE_KINDS:
        if kind in probe_data:
            table = _require_table(probe_data[kind], f"{prefix}.{kind}")
            sub_definitions[kind] = validators[kind](table, f"{prefix}.{kind}")

    if not sub_definitions:
        raise ValidationError(
            f"{prefix} must configure at least one of {list(PROBE_KINDS)}",
            field_name=prefix,
            value=probe_data,
        )

    return ProbeDefinition(service=service, roles=roles, **sub_definitions)


def validate_probe_definitions(probes_data: List[Dict[str, Any]]) -> Tuple[ProbeDefinition, ...]:
    """
    Validate the ``[[probes]]`` array, keeping file order.

    Raises:
        ValidationError: If any entry is invalid
    """
    if not isinstance(probes_data, list):
        raise ValidationError("probes must be an array of tables", field_name="probes", value=probes_data)

    definitions = tuple(
        validate_probe_definition(probe_data, i) for i, probe_data in enumerate(probes_data)
    )
    if not definitions:
        logger.warning("No probe definitions configured; the agent will idle")
    return definitions
