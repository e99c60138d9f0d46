"""
Abstract base class for monitoring backend implementations.

The agent talks to its backend for exactly two things:
- discovering the hosts a probe definition targets
- submitting batches of metric samples in their wire form

Both calls may fail transiently; implementations raise BackendError so the
callers can log the failure and carry on (skip the definition for the tick,
or keep the batch for a retry).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from ..models.host import Host


class BackendError(Exception):
    """Raised when a backend call fails."""


class AbstractBackend(ABC):
    """Abstract base class for monitoring backends."""

    @abstractmethod
    def find_hosts(self, service: str, roles: Sequence[str]) -> List[Host]:
        """
        Discover the hosts belonging to ``service`` and any of ``roles``.

        Args:
            service: Service name
            roles: Role names; an empty sequence means every role

        Returns:
            The matching hosts, possibly empty

        Raises:
            BackendError: If the discovery call fails
        """
        pass

    @abstractmethod
    def post_metrics(self, batch: List[Dict[str, Any]]) -> None:
        """
        Submit a batch of samples in wire form.

        The whole batch is accepted or rejected; there is no partial
        acknowledgement.

        Raises:
            BackendError: If the submission fails
        """
        pass

    def close(self) -> None:
        """Release any resources held by the backend."""
        pass
