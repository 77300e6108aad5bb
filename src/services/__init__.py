"""Services package.

Keep this module lightweight: importing `services` should only configure
logging helpers, nothing that spawns processes or opens sockets.
"""

from __future__ import annotations

from .logger import cleanup_logging, get_logger, setup_logging

__all__ = ["cleanup_logging", "get_logger", "setup_logging"]
