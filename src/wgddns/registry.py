"""Registry of monitored endpoints."""

from dataclasses import replace
from typing import Iterable

from wgddns.models import MonitoredEndpoint


class EndpointRegistry:
    """Ordered collection of monitored endpoints, keyed by interface.

    Insertion order is discovery order. Readers get copies from
    ``snapshot()`` and ``get()``, so the only way to change an entry is
    ``update_address()`` (the change detector) or ``replace_all()``
    (re-discovery).
    """

    def __init__(self, endpoints: Iterable[MonitoredEndpoint] = ()):
        self._endpoints: dict[str, MonitoredEndpoint] = {}
        for endpoint in endpoints:
            self.add(endpoint)

    def add(self, endpoint: MonitoredEndpoint) -> None:
        """Add an endpoint.

        Raises:
            ValueError: If the interface is already registered or the
                hostname is empty.
        """
        if not endpoint.hostname:
            raise ValueError(f"Empty hostname for interface '{endpoint.interface}'")
        if endpoint.interface in self._endpoints:
            raise ValueError(f"Interface '{endpoint.interface}' already registered")
        self._endpoints[endpoint.interface] = replace(endpoint)

    def get(self, interface: str) -> MonitoredEndpoint | None:
        """Copy of the entry for an interface, None if not monitored."""
        endpoint = self._endpoints.get(interface)
        return replace(endpoint) if endpoint is not None else None

    def snapshot(self) -> list[MonitoredEndpoint]:
        """Copies of all entries in discovery order."""
        return [replace(endpoint) for endpoint in self._endpoints.values()]

    def interfaces(self) -> list[str]:
        return list(self._endpoints)

    def update_address(self, interface: str, address: str) -> str | None:
        """Record a confirmed resolution for an interface.

        Returns:
            The previous address.

        Raises:
            KeyError: If the interface is not registered.
        """
        endpoint = self._endpoints[interface]
        previous = endpoint.last_ip
        self._endpoints[interface] = replace(endpoint, last_ip=address)
        return previous

    def replace_all(self, endpoints: Iterable[MonitoredEndpoint]) -> None:
        """Swap the whole registry for a freshly discovered set.

        Raises:
            ValueError: On duplicate interfaces or empty hostnames; the
                registry is left unchanged.
        """
        fresh = EndpointRegistry(endpoints)
        self._endpoints = fresh._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, interface: object) -> bool:
        return interface in self._endpoints
