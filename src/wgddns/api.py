"""HTTP control API.

Routes:
- /health - Health check (no authentication)
- /api/v1/interfaces - List monitored interfaces (GET)
- /api/v1/restart - Restart one interface (POST {"interface": "wg0"})

Everything under /api/ requires the X-API-Key header.
"""

import hmac
import logging
import time
from typing import Awaitable, Callable, Optional

from aiohttp import web

from wgddns.control import ControlService

API_KEY_HEADER = "X-API-Key"
API_PREFIX = "/api/"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class ApiServer:
    """aiohttp server exposing the control operations."""

    def __init__(
        self,
        control: ControlService,
        api_key: str,
        shutdown_timeout: float = 5.0,
        logger: logging.Logger | None = None,
    ):
        """Initialize API server.

        Args:
            control: Handler logic for the routes.
            api_key: Key clients must send in the X-API-Key header.
            shutdown_timeout: Grace period for open requests on close().
            logger: Logger to use. Defaults to the module logger.
        """
        self._control = control
        self._api_key = api_key
        self._shutdown_timeout = shutdown_timeout
        self._log = logger or logging.getLogger(__name__)

        self.app = web.Application(
            middlewares=[self._logging_middleware, self._auth_middleware]
        )
        self._setup_routes()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._port: int = 0

    def _setup_routes(self) -> None:
        """Set up all HTTP routes."""
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/api/v1/interfaces", self._handle_list_interfaces)
        self.app.router.add_post("/api/v1/restart", self._handle_restart)

    # =========================================================================
    # Middlewares
    # =========================================================================

    @web.middleware
    async def _logging_middleware(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        start = time.monotonic()
        status = 500
        try:
            response = await handler(request)
            status = response.status
            return response
        except web.HTTPException as e:
            status = e.status
            raise
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            self._log.info(
                f"API {request.method} {request.path} - {status} - "
                f"{duration_ms:.1f}ms - {request.remote}"
            )

    @web.middleware
    async def _auth_middleware(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        if request.path.startswith(API_PREFIX):
            provided = request.headers.get(API_KEY_HEADER, "")
            if not hmac.compare_digest(
                provided.encode("utf-8"), self._api_key.encode("utf-8")
            ):
                self._log.warning(f"API authentication failed from {request.remote}")
                return web.json_response({"error": "Invalid API key"}, status=401)
        return await handler(request)

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.Response(text="OK")

    async def _handle_list_interfaces(self, request: web.Request) -> web.Response:
        """List monitored interfaces."""
        self._log.debug(f"API interfaces request from {request.remote}")
        return web.json_response(self._control.list_interfaces())

    async def _handle_restart(self, request: web.Request) -> web.Response:
        """Restart one monitored interface."""
        try:
            body = await request.json()
        except ValueError:
            body = None

        interface = body.get("interface") if isinstance(body, dict) else None
        if not isinstance(interface, str) or not interface:
            self._log.debug(
                f"API restart request - invalid JSON from {request.remote}"
            )
            return web.json_response(
                {"success": False, "message": "Invalid request format"},
                status=400,
            )

        self._log.info(
            f"API restart request for interface '{interface}' from {request.remote}"
        )
        result = await self._control.restart_interface(interface)
        return web.json_response(result.to_dict(), status=result.status)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, host: str, port: int) -> web.AppRunner:
        """Start the server.

        Args:
            host: Host to bind to.
            port: Port to bind to (0 for random).

        Returns:
            App runner for cleanup.
        """
        self._runner = web.AppRunner(
            self.app,
            access_log=None,
            shutdown_timeout=self._shutdown_timeout,
        )
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        # Get actual port
        if self._site._server and self._site._server.sockets:
            self._port = self._site._server.sockets[0].getsockname()[1]
        else:
            self._port = port

        self._log.info(f"HTTP API server started on {host}:{self._port}")
        return self._runner

    def get_port(self) -> int:
        """Get the actual bound port."""
        return self._port

    async def close(self) -> None:
        """Stop accepting requests and shut the server down."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            self._log.info("HTTP API server closed")
