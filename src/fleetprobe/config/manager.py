"""
Configuration loading entry point.

This module assembles a complete AppConfig from a TOML file. Unlike a cached
singleton, every call reads the file again: the orchestrator calls
load_config() once per tick boundary and decides itself whether the result
replaces the active configuration.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..models.config import AppConfig
from ..validation import ValidationError, validate_boolean
from .loader import load_toml_file
from .validators import (
    validate_agent_config,
    validate_backend_config,
    validate_probe_definitions,
)

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "MACKEREL_APIKEY"

TOP_LEVEL_KEYS = ("api_key", "probe_only", "agent", "backend", "probes")


def build_app_config(
    config_data: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """
    Validate parsed configuration data and assemble an AppConfig.

    The API key is taken from the ``api_key`` key, or from the
    ``MACKEREL_APIKEY`` environment variable when the key is absent.

    Args:
        config_data: Parsed TOML document
        environ: Environment mapping (defaults to ``os.environ``)

    Raises:
        ValidationError: If any section is invalid or no API key is available
    """
    environ = os.environ if environ is None else environ

    unknown = sorted(set(config_data) - set(TOP_LEVEL_KEYS))
    if unknown:
        raise ValidationError(f"Unknown top-level keys: {unknown}", value=unknown)

    api_key = config_data.get("api_key") or environ.get(API_KEY_ENV_VAR, "")
    if not isinstance(api_key, str) or not api_key.strip():
        raise ValidationError(
            f"api_key is not set in the config file nor in ${API_KEY_ENV_VAR}",
            field_name="api_key",
        )

    return AppConfig(
        api_key=api_key.strip(),
        probe_only=validate_boolean(config_data.get("probe_only", False), field_name="probe_only"),
        agent=validate_agent_config(config_data.get("agent", {})),
        backend=validate_backend_config(config_data.get("backend", {})),
        probes=validate_probe_definitions(config_data.get("probes", [])),
    )


def load_config(config_path: Union[str, Path]) -> AppConfig:
    """
    Load and validate the complete application configuration.

    Args:
        config_path: Path to the TOML configuration file

    Returns:
        Fully validated AppConfig instance

    Raises:
        FileNotFoundError: If the configuration file is missing
        tomllib.TOMLDecodeError: If the file is malformed
        ValidationError: If configuration validation fails
    """
    config_path = Path(config_path)
    config_data = load_toml_file(config_path, "configuration file")
    app_config = build_app_config(config_data)
    logger.debug(
        f"Loaded configuration from {config_path} with {len(app_config.probes)} probe definitions"
    )
    return app_config
