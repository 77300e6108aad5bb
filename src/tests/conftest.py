"""
Shared test fixtures for pytest
"""

import asyncio
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from browser.router import SessionRouter
from browser.sessions import SessionRegistry
from config import ShellConfig
from core.debug_log import DebugLog
from core.discovery import DiscoveryResult
from foundation.coordinator import ShellCoordinator
from foundation.supervisor import BackendState
from services import cleanup_logging, setup_logging


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging(tmp_path_factory):
    """Setup logging for all tests"""
    setup_logging({"log_dir": str(tmp_path_factory.mktemp("logs")), "colored_output": False})
    yield
    cleanup_logging()


@pytest.fixture
def debug_log():
    """Fresh DebugLog with the default capacity"""
    return DebugLog()


@pytest.fixture
def shell_config(tmp_path):
    """ShellConfig pointing at a throwaway data directory"""
    return ShellConfig(
        backend_binary=tmp_path / "missing-backend",
        behaviors_tarfile=tmp_path / "behaviors.tar.gz",
        data_dir=tmp_path / "data",
        username="alice",
        log_dir=tmp_path / "logs",
    )


class FakeSupervisor:
    """Stands in for BackendSupervisor without spawning anything."""

    def __init__(self, port: int = 9999, error: Exception | None = None):
        self.port = port
        self.error = error
        self.debug_log = DebugLog()
        self.on_state_change = None
        self.process = None
        self.pid = None
        self.start_calls: list[int | None] = []
        self.stop_calls = 0
        self.shutdown_calls = 0

    async def start(self, companion_port=None) -> DiscoveryResult:
        self.start_calls.append(companion_port)
        if self.error is not None:
            raise self.error

        self.process = object()
        self.pid = 4242
        if self.on_state_change:
            self.on_state_change(BackendState.SPAWNING, BackendState.DISCOVERING)
        await asyncio.sleep(0)
        self.debug_log.append(f"APP_HOST=http://localhost:{self.port}")
        return DiscoveryResult.from_port(self.port)

    def stop(self) -> bool:
        self.stop_calls += 1
        return True

    async def shutdown(self, timeout: float = 5.0) -> None:
        self.shutdown_calls += 1

    def to_dict(self) -> dict:
        return {"status": "running" if self.process else "idle", "pid": self.pid}


@pytest.fixture
def fake_supervisor():
    return FakeSupervisor()


@pytest.fixture
def make_coordinator(shell_config):
    """Factory building a ShellCoordinator around a FakeSupervisor"""

    def _make(supervisor=None, companion=None, environ=None):
        supervisor = supervisor or FakeSupervisor()
        router = SessionRouter(SessionRegistry(), shell_config.username)
        return ShellCoordinator(
            shell_config,
            supervisor=supervisor,
            router=router,
            companion=companion,
            environ={} if environ is None else environ,
            probe_version=False,
        )

    return _make


@pytest.fixture
def make_stub_backend(tmp_path):
    """
    Factory writing an executable stub backend.

    The stub records its argv to ``<name>.args``, prints ``stdout`` and
    ``stderr``, then either exits with ``exit_code`` or idles until SIGINT.
    """

    def _make(stdout: str = "", stderr: str = "", exit_code: int | None = None, name: str = "backend") -> Path:
        script = tmp_path / name
        args_file = tmp_path / f"{name}.args"
        body = textwrap.dedent(
            f"""\
            import signal
            import sys
            import time

            signal.signal(signal.SIGINT, lambda *_: sys.exit(0))

            if "--version" in sys.argv:
                print("stub-backend 0.1")
                sys.exit(0)

            with open({str(args_file)!r}, "w") as f:
                f.write("\\n".join(sys.argv[1:]))

            sys.stderr.write({stderr!r})
            sys.stderr.flush()
            sys.stdout.write({stdout!r})
            sys.stdout.flush()

            exit_code = {exit_code!r}
            if exit_code is not None:
                sys.exit(exit_code)

            while True:
                time.sleep(0.05)
            """
        )
        script.write_text(f"#!{sys.executable}\n{body}")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def eventually():
    """Poll an async-friendly condition until it holds (or fail after timeout)"""

    async def _eventually(condition, timeout: float = 5.0, interval: float = 0.02):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not condition():
            if loop.time() > deadline:
                pytest.fail(f"Condition not met within {timeout}s")
            await asyncio.sleep(interval)

    return _eventually
