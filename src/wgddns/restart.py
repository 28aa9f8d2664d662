"""Tunnel restarts through the service manager."""

import asyncio
import logging

from wgddns.errors import ServiceManagerError
from wgddns.models import RestartOutcome
from wgddns.systemd import JOB_DONE, ServiceManagerProtocol, ServiceNaming

JOB_MODE_REPLACE = "replace"


class RestartCoordinator:
    """Restarts the service unit of one interface and reports the outcome.

    Restarts of different interfaces may run concurrently; restarts of the
    same interface are serialized.
    """

    def __init__(
        self,
        service_manager: ServiceManagerProtocol,
        naming: ServiceNaming | None = None,
        logger: logging.Logger | None = None,
    ):
        self._manager = service_manager
        self._naming = naming or ServiceNaming()
        self._log = logger or logging.getLogger(__name__)
        self._locks: dict[str, asyncio.Lock] = {}

    def unit_for(self, interface: str) -> str:
        return self._naming.unit_for(interface)

    async def restart(self, interface: str) -> RestartOutcome:
        """Restart an interface's unit, replacing any queued conflicting job.

        Never raises for service-manager failures; they are reported in the
        returned outcome.
        """
        unit = self._naming.unit_for(interface)
        lock = self._locks.setdefault(interface, asyncio.Lock())

        async with lock:
            self._log.debug(f"Restarting {unit}")
            try:
                result = await self._manager.restart_unit(unit, JOB_MODE_REPLACE)
            except ServiceManagerError as e:
                return RestartOutcome.failed(
                    interface, f"failed to restart service {unit}: {e}"
                )

        if result != JOB_DONE:
            return RestartOutcome.failed(
                interface, f"service restart job failed: {result}"
            )
        return RestartOutcome.ok(interface)
