"""Discovery of the WireGuard interfaces to monitor."""

import logging

from wgddns.errors import ConfigUnavailableError, DiscoveryError, ServiceManagerError
from wgddns.models import MonitoredEndpoint
from wgddns.registry import EndpointRegistry
from wgddns.systemd import ACTIVE_STATE, ServiceManagerProtocol, ServiceNaming
from wgddns.wireguard_config import WireGuardConfigParser


class InterfaceDiscoverer:
    """Finds tunnel interfaces and their hostname endpoints.

    Either asks the service manager for active tunnel units, or uses a
    single pinned interface without querying anything.
    """

    def __init__(
        self,
        service_manager: ServiceManagerProtocol,
        parser: WireGuardConfigParser,
        naming: ServiceNaming | None = None,
        single_interface: str | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize discoverer.

        Args:
            service_manager: Source of the unit listing (auto-discovery).
            parser: Parser for each interface's configuration.
            naming: Unit naming convention.
            single_interface: Pinned interface; disables auto-discovery.
            logger: Logger to use. Defaults to the module logger.
        """
        self._manager = service_manager
        self._parser = parser
        self._naming = naming or ServiceNaming()
        self._single_interface = single_interface
        self._log = logger or logging.getLogger(__name__)

    async def discover_interfaces(self) -> list[str]:
        """Names of the interfaces to monitor.

        Raises:
            DiscoveryError: If the service manager query fails.
        """
        if self._single_interface:
            return [self._single_interface]

        try:
            units = await self._manager.list_units()
        except ServiceManagerError as e:
            raise DiscoveryError(str(e)) from e

        interfaces: list[str] = []
        for unit in units:
            if unit.active_state != ACTIVE_STATE:
                continue
            interface = self._naming.interface_for(unit.name)
            if interface is not None and interface not in interfaces:
                interfaces.append(interface)
        return interfaces

    async def discover(self) -> list[MonitoredEndpoint]:
        """Discover interfaces and parse their endpoints.

        Raises:
            DiscoveryError: If the unit listing fails, or the pinned
                interface's configuration cannot be read.
        """
        endpoints: list[MonitoredEndpoint] = []

        for interface in await self.discover_interfaces():
            try:
                endpoint = await self._parser.parse(interface)
            except ConfigUnavailableError as e:
                if self._single_interface:
                    raise DiscoveryError(
                        f"failed to parse config for {interface}: {e}"
                    ) from e
                self._log.warning(f"Failed to parse config for {interface}: {e}")
                continue
            if endpoint is not None:
                endpoints.append(endpoint)

        if self._single_interface:
            self._log.info(
                f"Monitoring single interface: {self._single_interface} "
                f"with {len(endpoints)} domain endpoints"
            )
        else:
            self._log.info(
                f"Discovered {len(endpoints)} WireGuard interfaces with domain endpoints"
            )
        return endpoints

    async def populate(self, registry: EndpointRegistry) -> None:
        """Rebuild the registry from a fresh discovery.

        Interfaces already registered under the same hostname keep their
        recorded address, so a change that happened since the last check is
        still detected (and restarted) by the next pass. Only new entries
        take the address resolved during discovery.

        The registry is swapped in one step and left untouched on failure.

        Raises:
            DiscoveryError: As for discover().
        """
        endpoints = await self.discover()
        for endpoint in endpoints:
            known = registry.get(endpoint.interface)
            if known is not None and known.hostname == endpoint.hostname:
                endpoint.last_ip = known.last_ip
        registry.replace_all(endpoints)
