"""Endpoint address drift detection."""

import logging
from dataclasses import dataclass

from wgddns.errors import ResolutionError
from wgddns.models import MonitoredEndpoint, RestartOutcome
from wgddns.registry import EndpointRegistry
from wgddns.resolver import ResolverProtocol
from wgddns.restart import RestartCoordinator


@dataclass(frozen=True)
class ChangeEvent:
    """An observed address change and the restart it triggered."""

    interface: str
    hostname: str
    old_ip: str | None
    new_ip: str
    outcome: RestartOutcome


class ChangeDetector:
    """Re-resolves every registered endpoint and restarts drifted tunnels.

    The recorded address is advanced before the restart is attempted, so a
    failing restart is not retried until the address changes again.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        resolver: ResolverProtocol,
        coordinator: RestartCoordinator,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._resolver = resolver
        self._coordinator = coordinator
        self._log = logger or logging.getLogger(__name__)

    async def check_all(self) -> list[ChangeEvent]:
        """Run one pass over the registry, in registry order.

        Errors are isolated per endpoint and never raised.

        Returns:
            The change events of this pass.
        """
        events: list[ChangeEvent] = []
        for endpoint in self._registry.snapshot():
            try:
                event = await self.check_endpoint(endpoint)
            except Exception:
                self._log.exception(
                    f"Unexpected error checking {endpoint.hostname} "
                    f"(interface: {endpoint.interface})"
                )
                continue
            if event is not None:
                events.append(event)
        return events

    async def check_endpoint(self, endpoint: MonitoredEndpoint) -> ChangeEvent | None:
        """Check one endpoint; restart its tunnel if the address drifted."""
        self._log.debug(
            f"Resolving DNS for {endpoint.hostname} (interface: {endpoint.interface})"
        )
        try:
            current_ip = await self._resolver.resolve(endpoint.hostname)
        except ResolutionError as e:
            self._log.warning(f"Failed to resolve {endpoint.hostname}: {e}")
            return None

        self._log.debug(
            f"DNS resolution result for {endpoint.hostname}: {current_ip} "
            f"(interface: {endpoint.interface})"
        )

        if endpoint.last_ip is not None and current_ip == endpoint.last_ip:
            return None

        self._log.warning(
            f"IP change detected for {endpoint.hostname}: "
            f"{endpoint.last_ip} -> {current_ip} (interface: {endpoint.interface})"
        )

        try:
            previous = self._registry.update_address(endpoint.interface, current_ip)
        except KeyError:
            # Registry was swapped by a re-scan during this pass
            self._log.debug(f"Interface {endpoint.interface} no longer monitored")
            return None

        unit = self._coordinator.unit_for(endpoint.interface)
        outcome = await self._coordinator.restart(endpoint.interface)
        if outcome.success:
            self._log.warning(f"Successfully restarted {unit}")
        else:
            self._log.error(f"Failed to restart {unit}: {outcome.reason}")

        return ChangeEvent(
            interface=endpoint.interface,
            hostname=endpoint.hostname,
            old_ip=previous,
            new_ip=current_ip,
            outcome=outcome,
        )
