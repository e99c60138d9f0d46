"""
Configuration management for the fleetprobe package.

This module provides the interface for loading and validating the agent's
TOML configuration file.
"""

from .manager import API_KEY_ENV_VAR, build_app_config, load_config
from .loader import load_toml_file
from .validators import (
    validate_agent_config,
    validate_backend_config,
    validate_probe_definition,
    validate_probe_definitions,
)

__all__ = [
    # Main interface
    "load_config",
    "build_app_config",
    "API_KEY_ENV_VAR",
    # Advanced interface
    "load_toml_file",
    "validate_agent_config",
    "validate_backend_config",
    "validate_probe_definition",
    "validate_probe_definitions",
]
