"""Data types shared across the monitor."""

from dataclasses import dataclass
from typing import Any


@dataclass
class MonitoredEndpoint:
    """A tunnel interface whose peer endpoint is a hostname.

    Attributes:
        interface: Interface name (unique within the registry).
        endpoint: Raw "host:port" string as configured.
        hostname: Host portion of the endpoint, never a literal IPv4 address.
        last_ip: Last successfully resolved IPv4 address, None if resolution
            has never succeeded.
    """

    interface: str
    endpoint: str
    hostname: str
    last_ip: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "interface": self.interface,
            "endpoint": self.endpoint,
            "hostname": self.hostname,
            "last_ip": self.last_ip or "",
        }


@dataclass(frozen=True)
class RestartOutcome:
    """Result of a single restart request."""

    interface: str
    success: bool
    reason: str | None = None

    @classmethod
    def ok(cls, interface: str) -> "RestartOutcome":
        return cls(interface=interface, success=True)

    @classmethod
    def failed(cls, interface: str, reason: str) -> "RestartOutcome":
        return cls(interface=interface, success=False, reason=reason)


@dataclass(frozen=True)
class UnitInfo:
    """A unit as listed by the service manager."""

    name: str
    active_state: str
