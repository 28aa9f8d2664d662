"""Main monitor orchestration - ties all components together."""

import asyncio
import logging
import signal
from typing import Optional

from wgddns.api import ApiServer
from wgddns.config import Config
from wgddns.control import ControlService
from wgddns.detector import ChangeDetector, ChangeEvent
from wgddns.discovery import InterfaceDiscoverer
from wgddns.errors import DiscoveryError, ServiceManagerError
from wgddns.registry import EndpointRegistry
from wgddns.resolver import Resolver, ResolverProtocol
from wgddns.restart import RestartCoordinator
from wgddns.scheduler import Scheduler
from wgddns.systemd import ServiceNaming, SystemdManager
from wgddns.wireguard_config import WireGuardConfigParser


class StartupError(Exception):
    """Error during monitor startup."""

    pass


class Daemon:
    """WireGuard DDNS monitor.

    Responsibilities:
    - Acquire the service manager connection
    - Discover monitored endpoints into the registry
    - Run the change detector on schedule
    - Serve the control API when configured
    - Re-scan on SIGHUP, shut down gracefully on SIGINT/SIGTERM
    """

    def __init__(
        self,
        config: Config,
        service_manager: Optional[SystemdManager] = None,
        resolver: Optional[ResolverProtocol] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize daemon.

        Args:
            config: Validated monitor configuration.
            service_manager: Optional injected service manager (for testing).
            resolver: Optional injected resolver (for testing).
            logger: Logger to use. Components get children of it.
        """
        self._config = config
        self._log = logger or logging.getLogger("wgddns")
        self._running = False
        self._stop_event = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

        naming = ServiceNaming(config.service_prefix, config.service_suffix)
        self._manager = service_manager or SystemdManager(
            restart_timeout=config.restart_timeout,
            logger=self._log.getChild("systemd"),
        )
        self._resolver = resolver or Resolver(timeout=config.resolve_timeout)

        self.registry = EndpointRegistry()
        self._discoverer = InterfaceDiscoverer(
            service_manager=self._manager,
            parser=WireGuardConfigParser(
                resolver=self._resolver,
                config_dir=config.config_dir,
                logger=self._log.getChild("wireguard_config"),
            ),
            naming=naming,
            single_interface=config.single_interface,
            logger=self._log.getChild("discovery"),
        )
        self._coordinator = RestartCoordinator(
            service_manager=self._manager,
            naming=naming,
            logger=self._log.getChild("restart"),
        )
        self._detector = ChangeDetector(
            registry=self.registry,
            resolver=self._resolver,
            coordinator=self._coordinator,
            logger=self._log.getChild("detector"),
        )
        self._scheduler = Scheduler(
            check=self._detector.check_all,
            interval=config.check_interval,
            logger=self._log.getChild("scheduler"),
        )
        self._api_server: Optional[ApiServer] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def api_server(self) -> Optional[ApiServer]:
        return self._api_server

    async def start(self) -> None:
        """Start the monitor.

        Raises:
            StartupError: If the service manager, discovery or API server
                cannot be brought up. Anything already acquired is released.
        """
        self._log.info("Starting WireGuard DDNS monitor...")
        try:
            await self._connect()
            await self._discover()
            await self._start_api()
        except BaseException:
            await self._shutdown()
            raise

        self._scheduler.start()
        self._setup_signals()

        self._running = True
        self._log.info("WireGuard DDNS monitor started")

    async def run_forever(self) -> None:
        """Run until a shutdown signal or stop()."""
        if not self._running and not self._stop_event.is_set():
            await self.start()

        try:
            await self._stop_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self._shutdown()

    async def stop(self) -> None:
        """Request a graceful shutdown."""
        self._running = False
        self._stop_event.set()

    async def check_now(self) -> list[ChangeEvent]:
        """Run one detection pass immediately."""
        return await self._detector.check_all()

    async def rescan(self) -> bool:
        """Re-discover endpoints and swap the registry.

        Returns:
            True if the registry was replaced. On failure the current
            registry stays in place.
        """
        self._log.info("Re-scanning WireGuard interfaces")
        try:
            await self._discoverer.populate(self.registry)
        except DiscoveryError as e:
            self._log.error(f"Re-scan failed, keeping current interfaces: {e}")
            return False
        return True

    async def _connect(self) -> None:
        try:
            await self._manager.connect()
        except ServiceManagerError as e:
            raise StartupError(str(e)) from e
        self._log.debug("Connected to service manager")

    async def _discover(self) -> None:
        try:
            await self._discoverer.populate(self.registry)
        except DiscoveryError as e:
            raise StartupError(f"Failed to initialize monitor: {e}") from e

    async def _start_api(self) -> None:
        api = self._config.api
        if not api.enabled:
            if api.partially_configured:
                self._log.warning(
                    "API disabled: listen address, listen port and API key "
                    "must all be provided"
                )
            return

        control = ControlService(
            registry=self.registry,
            coordinator=self._coordinator,
            single_interface=self._config.single_interface,
            logger=self._log.getChild("control"),
        )
        self._api_server = ApiServer(
            control=control,
            api_key=api.api_key,
            shutdown_timeout=api.shutdown_timeout,
            logger=self._log.getChild("api"),
        )
        try:
            await self._api_server.start(api.listen_address, api.listen_port)
        except OSError as e:
            raise StartupError(
                f"Failed to start HTTP API on {api.listen_address}:{api.listen_port}: {e}"
            ) from e

    def _setup_signals(self) -> None:
        """Set up signal handlers for shutdown and re-scan."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._on_shutdown_signal)
        loop.add_signal_handler(signal.SIGHUP, self._on_rescan_signal)

    def _on_shutdown_signal(self) -> None:
        self._log.info("Received shutdown signal")
        self._spawn(self.stop())

    def _on_rescan_signal(self) -> None:
        self._log.info("Received re-scan signal")
        self._spawn(self.rescan())

    def _spawn(self, coro) -> asyncio.Task:
        """Run a signal-triggered coroutine, holding a reference until it ends."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._log.error("Background task failed", exc_info=task.exception())

    def _remove_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT, signal.SIGHUP):
            loop.remove_signal_handler(sig)

    async def _shutdown(self) -> None:
        """Release everything; safe to call more than once."""
        self._running = False

        await self._scheduler.stop()

        pending = [t for t in self._tasks if t is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._api_server:
            await self._api_server.close()
            self._api_server = None

        await self._manager.close()
        self._remove_signals()
        self._log.info("WireGuard DDNS monitor stopped")
