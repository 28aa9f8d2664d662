"""Control-surface operations: list monitored interfaces, force a restart."""

import logging
from dataclasses import dataclass
from typing import Any

from wgddns.registry import EndpointRegistry
from wgddns.restart import RestartCoordinator


@dataclass(frozen=True)
class ControlResult:
    """Outcome of a control request, with the HTTP status it maps to."""

    status: int
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


class ControlService:
    """Handler logic behind the HTTP API.

    Reads the registry through snapshots only and never records addresses.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        coordinator: RestartCoordinator,
        single_interface: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._coordinator = coordinator
        self._single_interface = single_interface
        self._log = logger or logging.getLogger(__name__)

    def list_interfaces(self) -> dict[str, Any]:
        interfaces = [endpoint.to_dict() for endpoint in self._registry.snapshot()]
        return {
            "single_interface_mode": bool(self._single_interface),
            "monitored_interface": self._single_interface or "",
            "interfaces": interfaces,
            "total_count": len(interfaces),
        }

    async def restart_interface(self, interface: str) -> ControlResult:
        """Restart a monitored interface on request.

        Only interfaces in the monitored set (and, when pinned, only the
        pinned one) can be restarted.
        """
        if self._single_interface and interface != self._single_interface:
            self._log.warning(
                f"API restart request denied - interface '{interface}' not allowed "
                f"(single-interface mode: {self._single_interface})"
            )
            return ControlResult(
                status=400,
                success=False,
                message=f"Only interface '{self._single_interface}' is monitored",
            )

        if interface not in self._registry:
            self._log.warning(
                f"API restart request denied - interface '{interface}' "
                "not found in monitored interfaces"
            )
            return ControlResult(
                status=404,
                success=False,
                message=f"Interface '{interface}' not found in monitored interfaces",
            )

        outcome = await self._coordinator.restart(interface)
        if not outcome.success:
            self._log.error(
                f"API restart request failed for interface '{interface}': {outcome.reason}"
            )
            return ControlResult(
                status=500,
                success=False,
                message=f"Failed to restart interface: {outcome.reason}",
            )

        self._log.info(
            f"API restart request completed successfully for interface '{interface}'"
        )
        return ControlResult(
            status=200,
            success=True,
            message=f"Interface '{interface}' restarted successfully",
        )
