"""
Backend Supervisor - Lifecycle of the local backend process.

Spawns the backend with a fixed command line, watches its stdout for the
port announcement, mirrors stdout/stderr into the debug log, and stops it
when the shell shuts down.

State machine:
    IDLE → SPAWNING → DISCOVERING → RUNNING → STOPPING → STOPPED
              │            │
              └────────────┴──→ FAILED (spawn error / exited before port)
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from core.debug_log import DebugLog
from core.discovery import DiscoveryResult, OneShot
from core.errors import BackendAlreadyStartedError, BackendExitedError, BackendSpawnError
from core.log_parser import PortAnnouncementParser, decode_chunk
from foundation.process_strategy import ProcessLifecycleStrategy, select_strategy

if TYPE_CHECKING:
    from config import ShellConfig

logger = logging.getLogger(__name__)

# asyncio's default 64 KiB line limit is too small for backend tracebacks
STREAM_LIMIT = 1024 * 1024


class BackendState(Enum):
    """Backend process states."""

    IDLE = "idle"
    SPAWNING = "spawning"
    DISCOVERING = "discovering"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class BackendLaunchSpec:
    """Binary and fixed arguments for the backend process."""

    executable: Path
    data_dir: Path
    username: str
    behaviors_tarfile: Path
    loglevel: str = "info"

    @classmethod
    def from_config(cls, config: "ShellConfig") -> "BackendLaunchSpec":
        return cls(
            executable=config.backend_binary,
            data_dir=config.data_dir,
            username=config.username,
            behaviors_tarfile=config.behaviors_tarfile,
            loglevel=config.backend_loglevel,
        )

    def build_args(self, companion_port: int | None = None) -> list[str]:
        """
        Build the backend command line (without the executable).

        The backend always runs headless on an OS-assigned port (``--port 0``);
        ``--dat-share-port`` is only passed when the peer-sharing companion
        has bound its own port.
        """
        args = [
            "--no-browser",
            "--loglevel",
            self.loglevel,
            "-d",
            str(self.data_dir),
            "-u",
            self.username,
            "--port",
            "0",
            "--behaviors-tarfile",
            str(self.behaviors_tarfile),
        ]

        if companion_port:
            args.extend(["--dat-share-port", str(companion_port)])

        return args

    def build_command(self, companion_port: int | None = None) -> list[str]:
        return [str(self.executable), *self.build_args(companion_port)]


class BackendSupervisor:
    """
    Owns the backend child process.

    Responsibilities:
    - Spawn the backend once, stdin ignored, stdout/stderr piped
    - Route stdout to the port parser, stderr to the debug log
    - Resolve the one-shot discovery cell on the first announcement
    - Terminate the backend via the platform strategy

    Usage:
        supervisor = BackendSupervisor(BackendLaunchSpec.from_config(config))
        result = await supervisor.start()
        print(result.endpoint_url)
        ...
        supervisor.stop()
    """

    def __init__(
        self,
        spec: BackendLaunchSpec,
        debug_log: DebugLog | None = None,
        strategy: ProcessLifecycleStrategy | None = None,
    ):
        self.spec = spec
        self.debug_log = debug_log if debug_log is not None else DebugLog()
        self.strategy = strategy or select_strategy()
        self.parser = PortAnnouncementParser(self.debug_log)
        self.discovery: OneShot[DiscoveryResult] = OneShot()

        self._state = BackendState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._detached = False
        self._stop_requested = False
        self._startup_error: Exception | None = None
        self._reader_tasks: list[asyncio.Task] = []
        self._watch_task: asyncio.Task | None = None

        self.on_state_change: Callable[[BackendState, BackendState], None] | None = None

        logger.info(f"BackendSupervisor initialized (strategy={self.strategy.name})")

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def detached(self) -> bool:
        """Whether the process was released from lifecycle tracking."""
        return self._detached

    @property
    def startup_error(self) -> Exception | None:
        return self._startup_error

    def _transition_to(self, new_state: BackendState) -> None:
        old_state = self._state
        if old_state != new_state:
            self._state = new_state
            logger.info(f"Backend state: {old_state.value} -> {new_state.value}")
            if self.on_state_change:
                self.on_state_change(old_state, new_state)

    async def start(self, companion_port: int | None = None) -> DiscoveryResult:
        """
        Spawn the backend and wait until it announces its port.

        Args:
            companion_port: Port of the peer-sharing companion, if running

        Returns:
            DiscoveryResult with the backend port and URL

        Raises:
            BackendAlreadyStartedError: If start() was already called
            BackendSpawnError: If the OS could not start the binary
            BackendExitedError: If the backend exited before announcing a port
        """
        if self._state != BackendState.IDLE:
            raise BackendAlreadyStartedError(
                f"Backend already started (state={self._state.value}); one backend per supervisor"
            )

        cmd = self.spec.build_command(companion_port)
        logger.info(f"Starting backend: {' '.join(cmd)}")
        self._transition_to(BackendState.SPAWNING)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
                **self.strategy.spawn_kwargs(),
            )
        except OSError as e:
            error = BackendSpawnError(str(self.spec.executable), e)
            self.debug_log.record_error(str(error))
            self._fail(error)
        else:
            logger.info(f"Backend spawned with PID {self._process.pid}")
            self._transition_to(BackendState.DISCOVERING)
            self._reader_tasks = [
                asyncio.create_task(self._read_stdout(self._process.stdout), name="backend-stdout"),
                asyncio.create_task(self._read_stderr(self._process.stderr), name="backend-stderr"),
            ]
            self._watch_task = asyncio.create_task(self._watch_exit(), name="backend-exit")

        return await self.discovery.wait()

    def _fail(self, error: Exception) -> None:
        self._startup_error = error
        self._transition_to(BackendState.FAILED)
        self.discovery.set_exception(error)

    async def _read_lines(self, stream: asyncio.StreamReader, handler: Callable[[bytes], Any]) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                logger.warning(f"Backend output line exceeded {STREAM_LIMIT} bytes, dropped")
                continue
            if not line:
                break
            handler(line)

    async def _read_stdout(self, stream: asyncio.StreamReader) -> None:
        await self._read_lines(stream, self._on_stdout)

    async def _read_stderr(self, stream: asyncio.StreamReader) -> None:
        await self._read_lines(stream, self._on_stderr)

    def _on_stdout(self, chunk: bytes) -> None:
        result = self.parser.feed(chunk)
        if result is not None:
            self._on_discovered(result)

    def _on_stderr(self, chunk: bytes) -> None:
        text = decode_chunk(chunk)
        logger.debug(f"backend stderr: {text.rstrip()}")
        self.debug_log.append_stderr(text)

    def _on_discovered(self, result: DiscoveryResult) -> None:
        if self._process is not None:
            self._detached = self.strategy.detach(self._process)

        logger.info(f"Backend is listening on: {result.endpoint_url} (pid {self.pid})")
        self._transition_to(BackendState.RUNNING)
        self.discovery.set_result(result)

    async def _watch_exit(self) -> None:
        """Wait for output to drain and the process to exit, then settle state."""
        await asyncio.gather(*self._reader_tasks, return_exceptions=True)
        returncode = await self._process.wait()

        if not self.discovery.done():
            error = BackendExitedError(returncode)
            self.debug_log.record_error(str(error))
            self._fail(error)
            return

        if self._state == BackendState.FAILED:
            return

        if self._stop_requested:
            logger.info(f"Backend exited with code {returncode}")
        else:
            logger.warning(f"Backend exited unexpectedly with code {returncode}")
            self.debug_log.append(f"Backend exited with code {returncode}")
        self._transition_to(BackendState.STOPPED)

    def stop(self) -> bool:
        """
        Terminate the backend (fire-and-forget).

        Returns:
            True if a termination request was sent
        """
        if self._process is None:
            logger.debug("stop() called but no backend process exists")
            return False

        if self._stop_requested or self._state in (BackendState.STOPPING, BackendState.STOPPED):
            logger.debug(f"stop() ignored in {self._state.value} state")
            return False

        if self._process.returncode is not None:
            logger.debug(f"Backend already exited with code {self._process.returncode}")
            return False

        self._stop_requested = True
        if self._state != BackendState.FAILED:
            self._transition_to(BackendState.STOPPING)

        try:
            self.strategy.terminate(self._process)
        except OSError as e:
            logger.warning(f"Failed to stop backend (PID {self.pid}): {e}")
        return True

    async def wait_closed(self, timeout: float | None = None) -> bool:
        """
        Wait for the backend to exit.

        Returns:
            True if the process has exited within the timeout
        """
        if self._watch_task is None:
            return True

        try:
            await asyncio.wait_for(asyncio.shield(self._watch_task), timeout=timeout)
        except TimeoutError:
            logger.warning(f"Backend (PID {self.pid}) did not exit within {timeout}s")
            return False
        return True

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the backend and force kill it if it ignores the request."""
        self.stop()
        if await self.wait_closed(timeout):
            return

        logger.warning(f"Force killing backend (PID {self.pid})")
        try:
            self._process.kill()
        except ProcessLookupError:
            pass
        await self.wait_closed(timeout)

    def to_dict(self) -> dict[str, Any]:
        result = self.discovery.result() if self.discovery.done() and not self._startup_error else None
        return {
            "status": self._state.value,
            "pid": self.pid,
            "detached": self._detached,
            "port": result.port if result else None,
            "error_message": str(self._startup_error) if self._startup_error else None,
        }


async def probe_backend_version(executable: Path | str, timeout: float = 10.0) -> str | None:
    """
    Ask the backend binary for its version string.

    Returns:
        Version output, or None if the binary could not be queried
    """
    try:
        process = await asyncio.create_subprocess_exec(
            str(executable),
            "--version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.warning(f"Could not query backend version: {e}")
        return None

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Backend --version did not answer within {timeout}s")
        process.kill()
        await process.wait()
        return None

    version = stdout.decode("utf-8", errors="replace").strip()
    return version or None
