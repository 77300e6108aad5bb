"""
Logger Service Module

Root logging for the shell: colored console output, a rotating app.log,
an errors.log for anything at ERROR or above, and a backend.log that
mirrors everything the backend process writes.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import colorlog

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

# Loggers that carry backend output and process lifecycle
BACKEND_OUTPUT_LOGGERS = ("core.log_parser", "foundation.supervisor")

# Library loggers that are too chatty for a local control channel
QUIET_LOGGERS = {"aiohttp.access": logging.WARNING, "asyncio": logging.WARNING}


class BackendOutputFilter(logging.Filter):
    """Pass only records emitted by the backend output loggers."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name in BACKEND_OUTPUT_LOGGERS


class LoggerService:
    """
    Owns the root logger's handlers.

    Settings (all optional, see ShellConfig.logging_config):
        log_dir, console_level, file_level, max_bytes, backup_count,
        colored_output, backend_log
    """

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = {
            "log_dir": "./logs",
            "console_level": "INFO",
            "file_level": "DEBUG",
            "max_bytes": 5 * 1024 * 1024,  # 5MB
            "backup_count": 3,
            "colored_output": True,
            "backend_log": True,
        }
        if config:
            self.config.update(config)

        self.loggers: dict[str, logging.Logger] = {}
        self.log_dir = self._prepare_log_dir(Path(self.config["log_dir"]).expanduser())

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)  # handlers do the filtering
        root_logger.handlers = []

        root_logger.addHandler(self._console_handler())
        root_logger.addHandler(self._file_handler("app.log", self._level("file_level")))
        root_logger.addHandler(self._file_handler("errors.log", logging.ERROR))
        if self.config["backend_log"]:
            backend_handler = self._file_handler("backend.log", logging.DEBUG)
            backend_handler.addFilter(BackendOutputFilter())
            root_logger.addHandler(backend_handler)

        for name, level in QUIET_LOGGERS.items():
            logging.getLogger(name).setLevel(level)

    @staticmethod
    def _prepare_log_dir(log_dir: Path) -> Path:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            if not os.access(log_dir, os.W_OK):
                raise PermissionError(f"Log directory not writable: {log_dir}")
        except OSError:
            log_dir = Path("./logs")
            log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir

    def _level(self, key: str) -> int:
        return getattr(logging, str(self.config[key]).upper(), logging.INFO)

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(self._level("console_level"))

        if self.config["colored_output"]:
            handler.setFormatter(
                colorlog.ColoredFormatter(
                    f"%(log_color)s{LOG_FORMAT}", datefmt=DATE_FORMAT, log_colors=LOG_COLORS
                )
            )
        else:
            handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def _file_handler(self, filename: str, level: int) -> logging.Handler:
        """Rotating file handler, or stderr when the file cannot be opened"""
        try:
            handler: logging.Handler = RotatingFileHandler(
                self.log_dir / filename,
                maxBytes=self.config["max_bytes"],
                backupCount=self.config["backup_count"],
            )
        except OSError:
            handler = logging.StreamHandler(sys.stderr)

        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self.loggers:
            self.loggers[name] = logging.getLogger(name)
        return self.loggers[name]

    def cleanup(self):
        """Close root handlers and forget named loggers"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

        self.loggers.clear()


_logger_service: LoggerService | None = None


def setup_logging(config: dict | None = None) -> logging.Logger:
    """
    Configure logging once per process.

    Args:
        config: Optional settings (see ShellConfig.logging_config)

    Returns:
        Configured root logger
    """
    global _logger_service

    if _logger_service is None:
        _logger_service = LoggerService(config)

    return logging.getLogger()


def get_logger(name: str) -> logging.Logger:
    if _logger_service is None:
        setup_logging()

    return _logger_service.get_logger(name)


def cleanup_logging():
    global _logger_service

    if _logger_service:
        _logger_service.cleanup()
        _logger_service = None
