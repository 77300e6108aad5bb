"""
Shared exceptions for the desktop shell core.

Exception Hierarchy:
    ShellError (base)
    ├── OneShotPendingError (result read before it was set)
    ├── BackendError (backend process failures)
    │   ├── BackendSpawnError (OS refused to start the binary)
    │   ├── BackendExitedError (exited before announcing its port)
    │   └── BackendAlreadyStartedError (start() called twice)
    ├── RouteError (proxy routing used before a route exists)
    └── StartupError (startup sequence could not reach READY)
"""


class ShellError(Exception):
    """Base exception for all desktop shell errors."""


class OneShotPendingError(ShellError):
    """Raised when reading a one-shot cell that has not been completed."""


class BackendError(ShellError):
    """Base exception for backend process failures."""


class BackendSpawnError(BackendError):
    """Raised when the backend binary cannot be started."""

    def __init__(self, executable: str, cause: BaseException) -> None:
        self.executable = executable
        self.cause = cause
        super().__init__(f"Error spawning {executable} binary: {cause}")


class BackendExitedError(BackendError):
    """Raised when the backend exits before announcing its port."""

    def __init__(self, returncode: int | None) -> None:
        self.returncode = returncode
        super().__init__(f"Backend exited with code {returncode} before announcing its port")


class BackendAlreadyStartedError(BackendError):
    """Raised when a supervisor is asked to start a second backend."""


class RouteError(ShellError):
    """Raised when proxy routing is requested without an installed route."""


class StartupError(ShellError):
    """Raised when the startup sequence fails."""
