"""Foundation - backend process supervision and shell coordination."""

from foundation.companion import CompanionService, StaticCompanion
from foundation.control_server import ControlServer
from foundation.coordinator import ShellCoordinator, StartupState, SupervisorState
from foundation.process_strategy import (
    PosixLifecycleStrategy,
    ProcessLifecycleStrategy,
    WindowsLifecycleStrategy,
    select_strategy,
)
from foundation.supervisor import (
    BackendLaunchSpec,
    BackendState,
    BackendSupervisor,
    probe_backend_version,
)

__all__ = [
    "BackendLaunchSpec",
    "BackendState",
    "BackendSupervisor",
    "CompanionService",
    "ControlServer",
    "PosixLifecycleStrategy",
    "ProcessLifecycleStrategy",
    "ShellCoordinator",
    "StartupState",
    "StaticCompanion",
    "SupervisorState",
    "WindowsLifecycleStrategy",
    "probe_backend_version",
    "select_strategy",
]
