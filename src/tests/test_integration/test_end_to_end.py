"""
End-to-end startup and shutdown with a real stub backend.

Exercises the whole chain: spawn -> port discovery -> environment export
-> replay route -> window -> last window closed -> backend stopped.
"""

import sys

import pytest

from browser.router import SessionRouter
from browser.sessions import SessionRegistry
from core.errors import StartupError
from foundation.coordinator import ShellCoordinator, StartupState
from foundation.supervisor import BackendState

pytestmark = pytest.mark.skipif(
    sys.platform.startswith("win"), reason="stub backend relies on a shebang and SIGINT"
)


@pytest.fixture
def make_shell(shell_config):
    """Factory for a real coordinator (real supervisor) around a given binary"""

    def _make(backend_binary):
        shell_config.backend_binary = backend_binary
        environ = {}
        coordinator = ShellCoordinator(
            shell_config,
            router=SessionRouter(SessionRegistry(), shell_config.username),
            environ=environ,
            probe_version=False,
        )
        return coordinator, environ

    return _make


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_startup_to_shutdown(self, make_shell, make_stub_backend, eventually):
        coordinator, environ = make_shell(
            make_stub_backend(stdout="starting up\nAPP_HOST=http://localhost:9999\nready\n")
        )
        states = []
        coordinator.on_state_change = lambda old, new: states.append(new)

        try:
            result = await coordinator.start(window_factory=lambda c: c.window_shown())

            assert result.port == 9999
            assert environ["INTERNAL_PORT"] == "9999"
            assert coordinator.router.replay_session.proxy_config.proxy_rules == "localhost:9999"
            assert coordinator.startup_state == StartupState.READY

            await eventually(lambda: "ready" in coordinator.debug_log.get_lines())
            assert "starting up" in coordinator.debug_log.get_lines()

            coordinator.window_destroyed()
            assert coordinator.startup_state == StartupState.STOPPED
            assert await coordinator.supervisor.wait_closed(timeout=5.0)
            assert coordinator.supervisor.state == BackendState.STOPPED
        finally:
            await coordinator.close()

        assert states == [
            StartupState.SPAWNING,
            StartupState.DISCOVERING,
            StartupState.DISCOVERED,
            StartupState.ROUTED,
            StartupState.READY,
            StartupState.SHUTTING_DOWN,
            StartupState.STOPPED,
        ]

    @pytest.mark.asyncio
    async def test_missing_backend_fails_with_diagnostics(self, make_shell, tmp_path):
        coordinator, environ = make_shell(tmp_path / "no-such-backend")

        with pytest.raises(StartupError):
            await coordinator.start(window_factory=lambda c: c.window_shown())

        assert coordinator.startup_state == StartupState.FAILED
        assert environ == {}
        assert "Error spawning" in coordinator.diagnostics()["logText"]
        assert coordinator.status()["backend"]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_backend_crash_before_port(self, make_shell, make_stub_backend):
        coordinator, _ = make_shell(
            make_stub_backend(stdout="starting up\n", stderr="Traceback: boom\n", exit_code=1)
        )

        with pytest.raises(StartupError, match="exited with code 1"):
            await coordinator.start()

        log_text = coordinator.diagnostics()["logText"]
        assert "stderr: Traceback: boom" in log_text
        assert coordinator.status()["error_message"].startswith("Backend exited with code 1")
