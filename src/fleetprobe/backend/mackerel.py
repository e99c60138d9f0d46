"""
Backend client for the Mackerel HTTP API.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .. import __version__
from ..models.host import Host
from .base import AbstractBackend, BackendError

logger = logging.getLogger(__name__)

HOSTS_PATH = "/api/v0/hosts"
TSDB_PATH = "/api/v0/tsdb"


class MackerelClient(AbstractBackend):
    """
    Synchronous Mackerel API client built on ``httpx.Client``.

    One client is shared by every scheduler and the relay worker; httpx
    clients are safe to use from several threads.

    Args:
        api_key: Value of the ``X-Api-Key`` header
        base_url: API root, e.g. ``https://api.mackerelio.com``
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport, used by tests
    """

    def __init__(self, api_key: str, base_url: str = "https://api.mackerelio.com",
                 timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "X-Api-Key": api_key,
                "User-Agent": f"fleetprobe/{__version__}",
            },
            timeout=timeout,
            transport=transport,
        )

    def find_hosts(self, service: str, roles: Sequence[str]) -> List[Host]:
        params: List[tuple] = [("service", service)]
        params.extend(("role", role) for role in roles)
        data = self._request("GET", HOSTS_PATH, params=params)

        hosts_data = data.get("hosts") if isinstance(data, dict) else None
        if not isinstance(hosts_data, list):
            raise BackendError(f"unexpected response from {HOSTS_PATH}: missing 'hosts' array")
        try:
            return [Host.from_api(entry) for entry in hosts_data]
        except (KeyError, TypeError, AttributeError) as e:
            raise BackendError(f"malformed host entry from {HOSTS_PATH}: {e}") from e

    def post_metrics(self, batch: List[Dict[str, Any]]) -> None:
        self._request("POST", TSDB_PATH, json=batch)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{method} {path} failed with status {e.response.status_code}: "
                f"{e.response.text.strip()[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e
        except (ValueError, RuntimeError) as e:
            # Unencodable body, or a client that was already closed.
            raise BackendError(f"{method} {path} could not be sent: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON: {e}") from e

    def __repr__(self) -> str:
        return f"MackerelClient(base_url={self.base_url!r})"
