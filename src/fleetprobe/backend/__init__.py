"""
Monitoring backend clients.

This module provides the backend interface used for host discovery and
metric submission, and its Mackerel API implementation.
"""

from .base import AbstractBackend, BackendError
from .factory import create_backend
from .mackerel import MackerelClient

__all__ = [
    "AbstractBackend",
    "BackendError",
    "MackerelClient",
    "create_backend",
]
