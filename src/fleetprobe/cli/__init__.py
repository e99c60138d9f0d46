"""
Command-line interface for the fleetprobe package.

This module provides the main CLI entry point for the probing agent.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
