"""HTTP control channel between the UI layer and the shell coordinator."""

import json
import logging
import time
from typing import TYPE_CHECKING

from aiohttp import web
from pydantic import BaseModel, ValidationError

from core.errors import RouteError
from models.control import ClearCookiesRequest, DiagnosticsResponse, ToggleProxyRequest

if TYPE_CHECKING:
    from foundation.coordinator import ShellCoordinator

logger = logging.getLogger(__name__)


class ControlServer:
    """
    Request/response channel used by renderer windows.

    Serves:
    - GET /health - Health check endpoint
    - GET /api/status - Startup state, backend and routing status
    - GET /api/diagnostics - Discovered metadata and recent backend log
    - POST /api/proxy - Toggle record-session proxy ({"enabled": bool})
    - POST /api/cookies/clear - Clear a session partition ({"isReplay": bool})
    """

    def __init__(self, coordinator: "ShellCoordinator"):
        self.coordinator = coordinator
        self._start_time = time.time()
        self._runner: web.AppRunner | None = None
        self._port: int | None = None

        self.app = web.Application()
        self._setup_routes()

    @property
    def port(self) -> int | None:
        """Bound port once started."""
        return self._port

    def _setup_routes(self) -> None:
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/api/status", self._handle_status)
        self.app.router.add_get("/api/diagnostics", self._handle_diagnostics)
        self.app.router.add_post("/api/proxy", self._handle_toggle_proxy)
        self.app.router.add_post("/api/cookies/clear", self._handle_clear_cookies)

    async def _parse_body(self, request: web.Request, model: type[BaseModel]) -> BaseModel:
        try:
            data = await request.json()
        except ValueError:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "Request body must be JSON"}),
                content_type="application/json",
            )

        try:
            return model.model_validate(data)
        except ValidationError as e:
            details = e.errors(include_url=False, include_context=False)
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "Invalid request", "details": details}),
                content_type="application/json",
            )

    async def _handle_health(self, request: web.Request) -> web.Response:
        uptime = time.time() - self._start_time
        return web.json_response(
            {
                "status": "healthy",
                "state": self.coordinator.startup_state.value,
                "uptime_seconds": round(uptime, 2),
            }
        )

    async def _handle_status(self, request: web.Request) -> web.Response:
        """GET /api/status - includes the startup error when startup failed."""
        return web.json_response(self.coordinator.status())

    async def _handle_diagnostics(self, request: web.Request) -> web.Response:
        """GET /api/diagnostics - {config, logText}."""
        response = DiagnosticsResponse(**self.coordinator.diagnostics())
        return web.json_response(response.model_dump())

    async def _handle_toggle_proxy(self, request: web.Request) -> web.Response:
        """POST /api/proxy - answers once the record session applied the rule."""
        body = await self._parse_body(request, ToggleProxyRequest)

        try:
            await self.coordinator.toggle_proxy(body.enabled)
        except RouteError as e:
            return web.json_response({"error": str(e)}, status=409)

        return web.json_response({})

    async def _handle_clear_cookies(self, request: web.Request) -> web.Response:
        """POST /api/cookies/clear"""
        body = await self._parse_body(request, ClearCookiesRequest)
        await self.coordinator.clear_cookies(body.isReplay)
        return web.json_response({})

    async def start(self, host: str = "127.0.0.1", port: int = 0) -> int:
        """
        Start the HTTP server.

        Returns:
            Port the server bound (useful with port=0)
        """
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()

        addresses = self._runner.addresses
        self._port = addresses[0][1] if addresses else port
        logger.info(f"Control channel running at http://{host}:{self._port}")
        return self._port

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Control channel stopped")
