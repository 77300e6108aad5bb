"""
Process lifecycle strategies - platform-specific spawn/detach/kill.

The backend is spawned, detached and terminated differently on Windows
than on POSIX systems. One strategy is selected at startup so the
supervisor never branches on the platform itself.

    POSIX:   new session, detached after discovery, SIGINT on stop
    Windows: new process group, stays attached, taskkill /F /T on stop
"""

import asyncio
import logging
import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class ProcessLifecycleStrategy(ABC):
    """Platform hooks used by BackendSupervisor."""

    name: str = "abstract"

    @abstractmethod
    def spawn_kwargs(self) -> dict[str, Any]:
        """Extra keyword arguments for asyncio.create_subprocess_exec."""

    @abstractmethod
    def detach(self, process: asyncio.subprocess.Process) -> bool:
        """
        Release the process from the shell's lifecycle tracking.

        Returns:
            True if the process is now detached
        """

    @abstractmethod
    def terminate(self, process: asyncio.subprocess.Process) -> None:
        """Ask the process (tree) to stop. Fire-and-forget, best effort."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PosixLifecycleStrategy(ProcessLifecycleStrategy):
    """SIGINT-based graceful shutdown for Linux and macOS."""

    name = "posix"

    def spawn_kwargs(self) -> dict[str, Any]:
        return {"start_new_session": True}

    def detach(self, process: asyncio.subprocess.Process) -> bool:
        logger.debug(f"Detaching backend process {process.pid}")
        return True

    def terminate(self, process: asyncio.subprocess.Process) -> None:
        logger.info(f"Sending SIGINT to backend (PID {process.pid})")
        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            logger.debug(f"Backend {process.pid} already exited")


class WindowsLifecycleStrategy(ProcessLifecycleStrategy):
    """Forced process-tree kill; signals do not reach the whole tree."""

    name = "windows"

    def spawn_kwargs(self) -> dict[str, Any]:
        # CREATE_NEW_PROCESS_GROUP only exists in the Windows build of subprocess
        return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0x200)}

    def detach(self, process: asyncio.subprocess.Process) -> bool:
        # Kept attached: taskkill needs the live tree later.
        return False

    def kill_command(self, pid: int) -> list[str]:
        return ["taskkill", "/F", "/PID", str(pid), "/T"]

    def terminate(self, process: asyncio.subprocess.Process) -> None:
        cmd = self.kill_command(process.pid)
        logger.info(f"Killing backend process tree: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            logger.warning(f"taskkill failed to run: {e}")
            return

        if result.returncode != 0:
            logger.warning(
                f"taskkill exited with {result.returncode}: {result.stderr.strip() or result.stdout.strip()}"
            )


def select_strategy(platform: str | None = None) -> ProcessLifecycleStrategy:
    """
    Pick the lifecycle strategy for a platform.

    Args:
        platform: sys.platform style identifier (default: current platform)
    """
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsLifecycleStrategy()
    return PosixLifecycleStrategy()
