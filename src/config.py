"""
Configuration for the desktop shell.

All settings can be overridden via environment variables; invalid numeric
values fall back to their defaults with a warning.
"""

import getpass
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from core.errors import ShellError

PROJECT_DIR = Path(__file__).resolve().parent.parent
BINARIES_DIR = PROJECT_DIR / "python-binaries"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger(__name__)


class ConfigError(ShellError):
    """Configuration validation error"""

    pass


def _int_env(name: str, default: int, min_val: int | None = None) -> int:
    """Read an integer setting; unparsable values fall back to the default."""
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using default {default}")
        return default

    if min_val is not None and value < min_val:
        logger.warning(f"{name}={value} below minimum, using {min_val}")
        return min_val
    return value


def _path_env(name: str, default: Path) -> Path:
    return Path(os.getenv(name, str(default))).expanduser()


def _default_username() -> str:
    return os.getenv("SHELL_USERNAME") or getpass.getuser()


@dataclass
class ShellConfig:
    """
    Configuration for the desktop shell.

    All settings can be overridden via environment variables.
    """

    # Backend process
    backend_binary: Path = field(
        default_factory=lambda: _path_env("SHELL_BACKEND_BIN", BINARIES_DIR / "webrecorder")
    )
    behaviors_tarfile: Path = field(
        default_factory=lambda: _path_env(
            "SHELL_BEHAVIORS_TARFILE", BINARIES_DIR / "behaviors.tar.gz"
        )
    )
    data_dir: Path = field(
        default_factory=lambda: _path_env(
            "SHELL_DATA_DIR", Path.home() / "Documents" / "Webrecorder-Data"
        )
    )
    username: str = field(default_factory=_default_username)
    backend_loglevel: str = field(
        default_factory=lambda: os.getenv("SHELL_BACKEND_LOGLEVEL", "info")
    )

    # Diagnostics
    debug_log_lines: int = field(
        default_factory=lambda: _int_env("SHELL_DEBUG_LOG_LINES", 500, min_val=1)
    )

    # Control channel
    control_host: str = field(default_factory=lambda: os.getenv("SHELL_CONTROL_HOST", "127.0.0.1"))
    control_port: int = field(default_factory=lambda: _int_env("SHELL_CONTROL_PORT", 0))

    # Peer-sharing companion already listening on this port (0 = none)
    dat_share_port: int = field(default_factory=lambda: _int_env("SHELL_DAT_SHARE_PORT", 0))

    # Logging
    log_dir: Path = field(
        default_factory=lambda: _path_env("SHELL_LOG_DIR", Path.home() / ".recorder_shell" / "logs")
    )
    log_level: str = field(default_factory=lambda: os.getenv("SHELL_LOG_LEVEL", "INFO"))

    # Exported to the environment once the backend is up
    internal_host: str = "localhost"
    allow_dat: bool = True

    def validate(self) -> "ShellConfig":
        """
        Check settings for consistency.

        Raises:
            ConfigError: Listing every invalid setting
        """
        errors = []

        if self.debug_log_lines <= 0:
            errors.append(f"debug_log_lines must be positive, got {self.debug_log_lines}")

        if not 0 <= self.control_port <= 65535:
            errors.append(f"control_port out of range: {self.control_port}")

        if not 0 <= self.dat_share_port <= 65535:
            errors.append(f"dat_share_port out of range: {self.dat_share_port}")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"Invalid log level: {self.log_level}")

        if not self.username:
            errors.append("username must not be empty")

        if errors:
            raise ConfigError("Invalid configuration:\n  " + "\n  ".join(errors))

        return self

    def logging_config(self) -> dict[str, Any]:
        """Settings for services.logger.setup_logging()."""
        return {
            "log_dir": str(self.log_dir),
            "console_level": self.log_level.upper(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend_binary": str(self.backend_binary),
            "behaviors_tarfile": str(self.behaviors_tarfile),
            "data_dir": str(self.data_dir),
            "username": self.username,
            "backend_loglevel": self.backend_loglevel,
            "debug_log_lines": self.debug_log_lines,
            "control_host": self.control_host,
            "control_port": self.control_port,
            "dat_share_port": self.dat_share_port,
            "log_dir": str(self.log_dir),
            "log_level": self.log_level,
        }
