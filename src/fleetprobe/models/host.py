"""
Host data model.

Hosts are returned by the backend's discovery call and are only borrowed for
the duration of one tick; nothing caches them across ticks.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Host:
    """
    A monitored host as reported by the backend.

    Attributes:
        id: Backend host id, used as the metric owner
        name: Host name
        display_name: Optional human-friendly name
        custom_identifier: Optional user-assigned identifier
        status: Host status (e.g. "working", "standby")
        roles: Mapping of service name to the role names the host has in it
        ip_addresses: Mapping of interface name to its IP address
        meta: Free-form metadata from the backend
    """

    id: str
    name: str
    display_name: str = ""
    custom_identifier: str = ""
    status: str = ""
    roles: Dict[str, List[str]] = field(default_factory=dict)
    ip_addresses: Dict[str, str] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Host":
        """
        Build a Host from one entry of the backend's ``hosts`` array.

        Interfaces without an IPv4 address fall back to their first IPv6
        address, if any.
        """
        ip_addresses: Dict[str, str] = {}
        for interface in data.get("interfaces") or []:
            name = interface.get("name")
            if not name:
                continue
            address = interface.get("ipAddress") or next(
                iter(interface.get("ipv6Addresses") or []), ""
            )
            if address:
                ip_addresses[name] = address

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            display_name=data.get("displayName") or "",
            custom_identifier=data.get("customIdentifier") or "",
            status=data.get("status") or "",
            roles={
                service: list(roles)
                for service, roles in (data.get("roles") or {}).items()
            },
            ip_addresses=ip_addresses,
            meta=dict(data.get("meta") or {}),
        )

    def __str__(self) -> str:
        return f"id:{self.id} name:{self.name}"
