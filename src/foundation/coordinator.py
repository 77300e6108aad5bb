"""
Shell Coordinator - startup gating and shutdown of the backend.

Sequence:
1. Start the optional peer-sharing companion (failure tolerated)
2. Spawn the backend and wait for its port announcement
3. Export INTERNAL_HOST / INTERNAL_PORT / ALLOW_DAT
4. Route the replay session through the backend
5. Hand over to the window factory; the first shown window means READY
6. When the last window closes, stop the backend

State machine:
    UNSTARTED → SPAWNING → DISCOVERING → DISCOVERED → ROUTED → READY
                   │            │                               │
                   └────────────┴──→ FAILED        SHUTTING_DOWN ← (last window closed)
                                                         ↓
                                                      STOPPED
"""

import asyncio
import inspect
import logging
import os
from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from browser.router import SessionRouter
from browser.sessions import SessionRegistry
from config import ShellConfig
from core.debug_log import DebugLog
from core.discovery import DiscoveryResult
from core.errors import ShellError, StartupError
from foundation.companion import CompanionService, start_companion
from foundation.supervisor import (
    BackendLaunchSpec,
    BackendState,
    BackendSupervisor,
    probe_backend_version,
)
from ui.window_registry import WindowReferenceCounter

logger = logging.getLogger(__name__)

APP_NAME = "Webrecorder Desktop"
APP_VERSION = "1.0.0"


class StartupState(Enum):
    """Shell startup/shutdown states."""

    UNSTARTED = "unstarted"
    SPAWNING = "spawning"
    DISCOVERING = "discovering"
    DISCOVERED = "discovered"
    ROUTED = "routed"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class SupervisorState:
    """
    Process-wide shell state, owned by ShellCoordinator.

    Holds the backend process handle, the discovered port, the debug log and
    the open window count. ``metadata`` is what the diagnostics query
    reports as ``config``.
    """

    debug_log: DebugLog
    startup_state: StartupState = StartupState.UNSTARTED
    discovery: DiscoveryResult | None = None
    process: Any = None
    pid: int | None = None
    startup_error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    window_count: int = 0

    @property
    def failed(self) -> bool:
        return self.startup_state == StartupState.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.startup_state.value,
            "port": self.discovery.port if self.discovery else None,
            "app_url": self.discovery.endpoint_url if self.discovery else None,
            "pid": self.pid,
            "error_message": self.startup_error,
            "windows": self.window_count,
        }


WindowFactory = Callable[["ShellCoordinator"], Awaitable[Any] | Any]


class ShellCoordinator:
    """
    Ties the supervisor, session router and window counter together.

    Usage:
        coordinator = ShellCoordinator(ShellConfig())
        await coordinator.start(window_factory=create_window)
        # toolkit calls coordinator.window_shown() / window_destroyed()
    """

    def __init__(
        self,
        config: ShellConfig | None = None,
        supervisor: BackendSupervisor | None = None,
        router: SessionRouter | None = None,
        companion: CompanionService | None = None,
        environ: MutableMapping[str, str] | None = None,
        probe_version: bool = True,
    ):
        self.config = config or ShellConfig()

        debug_log = supervisor.debug_log if supervisor else DebugLog(self.config.debug_log_lines)
        self.state = SupervisorState(debug_log=debug_log)

        self.supervisor = supervisor or BackendSupervisor(
            BackendLaunchSpec.from_config(self.config), debug_log
        )
        self.router = router or SessionRouter(SessionRegistry(), self.config.username)
        self.companion = companion
        self.environ = os.environ if environ is None else environ
        self.probe_version = probe_version

        self.windows = WindowReferenceCounter(on_last_closed=self._on_last_window_closed)
        self._version_task: asyncio.Task | None = None

        self.on_state_change: Callable[[StartupState, StartupState], None] | None = None
        self.supervisor.on_state_change = self._on_backend_state_change

    @property
    def debug_log(self) -> DebugLog:
        return self.state.debug_log

    @property
    def startup_state(self) -> StartupState:
        return self.state.startup_state

    def _transition_to(self, new_state: StartupState) -> None:
        old_state = self.state.startup_state
        if old_state != new_state:
            self.state.startup_state = new_state
            logger.info(f"Shell state: {old_state.value} -> {new_state.value}")
            if self.on_state_change:
                self.on_state_change(old_state, new_state)

    def _on_backend_state_change(self, old: BackendState, new: BackendState) -> None:
        if new == BackendState.DISCOVERING:
            self.state.process = self.supervisor.process
            self.state.pid = self.supervisor.pid
            self._transition_to(StartupState.DISCOVERING)

    def _fail(self, error: Exception) -> None:
        self.state.startup_error = str(error)
        self._transition_to(StartupState.FAILED)
        logger.error(f"Startup failed: {error}")

    async def start(self, window_factory: WindowFactory | None = None) -> DiscoveryResult:
        """
        Run the startup sequence up to handing control to the window factory.

        Args:
            window_factory: Called once the replay route is installed

        Returns:
            DiscoveryResult for the running backend

        Raises:
            StartupError: If the shell was already started or the backend failed
        """
        if self.state.startup_state != StartupState.UNSTARTED:
            raise StartupError(f"Shell already started (state={self.state.startup_state.value})")

        self.state.metadata["dataPath"] = str(self.config.data_dir)
        self._transition_to(StartupState.SPAWNING)

        if self.probe_version:
            self._version_task = asyncio.create_task(self._record_version())

        companion_port = await start_companion(self.companion)

        try:
            result = await self.supervisor.start(companion_port)
        except ShellError as e:
            self._fail(e)
            raise StartupError(f"Backend did not start: {e}") from e

        self.state.discovery = result
        self.state.metadata["host"] = result.endpoint_url
        self._transition_to(StartupState.DISCOVERED)
        logger.info(f"Backend started: {result.port}")

        self._export_environment(result.port)

        await self.router.install_route(result.port)
        self._transition_to(StartupState.ROUTED)

        if window_factory is not None:
            created = window_factory(self)
            if inspect.isawaitable(created):
                await created

        return result

    async def _record_version(self) -> None:
        backend_version = await probe_backend_version(self.config.backend_binary)
        lines = [f"{APP_NAME} {APP_VERSION}"]
        if backend_version:
            lines.append(backend_version.replace("\n", "<BR>"))
        self.state.metadata["version"] = "<BR>".join(lines)

    def _export_environment(self, port: int) -> None:
        self.environ["INTERNAL_HOST"] = self.config.internal_host
        self.environ["INTERNAL_PORT"] = str(port)
        if self.config.allow_dat:
            self.environ["ALLOW_DAT"] = "true"

    # =========================================================================
    # Windows
    # =========================================================================

    def window_shown(self) -> int:
        count = self.windows.window_shown()
        self.state.window_count = count
        if self.state.startup_state == StartupState.ROUTED:
            self._transition_to(StartupState.READY)
        return count

    def window_destroyed(self) -> int:
        count = self.windows.window_destroyed()
        self.state.window_count = count
        return count

    def _on_last_window_closed(self) -> None:
        self.state.window_count = 0
        if self.supervisor.process is None:
            logger.info("Last window closed, no backend to stop")
            return

        if self.state.startup_state == StartupState.READY:
            self._transition_to(StartupState.SHUTTING_DOWN)
            self.supervisor.stop()
            self._transition_to(StartupState.STOPPED)
        else:
            self.supervisor.stop()

    # =========================================================================
    # Control commands
    # =========================================================================

    async def toggle_proxy(self, enabled: bool) -> dict[str, str]:
        """Switch record-session capture on or off; returns the applied config."""
        config = await self.router.toggle_route(enabled)
        return config.to_dict()

    async def clear_cookies(self, is_replay: bool = False) -> str:
        return await self.router.clear_cookies(is_replay)

    def diagnostics(self) -> dict[str, Any]:
        """Discovered metadata plus the recent backend log, HTML-formatted."""
        return {
            "config": dict(self.state.metadata),
            "logText": self.debug_log.html_text(),
        }

    def status(self) -> dict[str, Any]:
        result = self.state.to_dict()
        result.update(
            {
                "backend": self.supervisor.to_dict(),
                "routes": self.router.to_dict(),
            }
        )
        return result

    async def close(self, timeout: float = 5.0) -> None:
        """Stop the backend (if still running) and wait for it to exit."""
        if self._version_task and not self._version_task.done():
            self._version_task.cancel()
            try:
                await self._version_task
            except asyncio.CancelledError:
                pass

        if self.supervisor.process is not None:
            await self.supervisor.shutdown(timeout)
