"""Core module - Backend output parsing and discovery primitives"""

from .debug_log import DEFAULT_MAX_LINES, DebugLog
from .discovery import DiscoveryResult, OneShot
from .errors import (
    BackendAlreadyStartedError,
    BackendError,
    BackendExitedError,
    BackendSpawnError,
    OneShotPendingError,
    RouteError,
    ShellError,
    StartupError,
)
from .log_parser import APP_HOST_SENTINEL, PortAnnouncementParser, extract_port

__all__ = [
    "APP_HOST_SENTINEL",
    "BackendAlreadyStartedError",
    "BackendError",
    "BackendExitedError",
    "BackendSpawnError",
    "DEFAULT_MAX_LINES",
    "DebugLog",
    "DiscoveryResult",
    "OneShot",
    "OneShotPendingError",
    "PortAnnouncementParser",
    "RouteError",
    "ShellError",
    "StartupError",
    "extract_port",
]
