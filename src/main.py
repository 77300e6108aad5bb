"""
Main Entry Point for the Recorder Desktop Shell

Runs the backend supervisor and control channel without a windowing
toolkit: a headless window stands in for the UI and counts as one open
window until Ctrl+C, at which point it closes and the backend is stopped.
"""

__version__ = "1.0.0"

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from config import ConfigError, ShellConfig
from core.errors import StartupError
from foundation.companion import StaticCompanion
from foundation.control_server import ControlServer
from foundation.coordinator import ShellCoordinator
from services.logger import setup_logging

logger = logging.getLogger(__name__)


class HeadlessWindow:
    """Window stand-in: shown once startup finishes, destroyed on shutdown."""

    def __init__(self, coordinator: ShellCoordinator, record_proxy: bool = False):
        self.coordinator = coordinator
        self.record_proxy = record_proxy
        self.open = False

    async def show(self, coordinator: ShellCoordinator) -> None:
        # Record capture starts only after the operator opted in.
        if self.record_proxy:
            await coordinator.router.install_record_route()

        coordinator.window_shown()
        self.open = True

    def close(self) -> None:
        if self.open:
            self.open = False
            self.coordinator.window_destroyed()


class Application:
    """
    Main application controller
    Coordinates all components and manages lifecycle
    """

    def __init__(self, config: ShellConfig, record_proxy: bool = False):
        self.config = config
        companion = StaticCompanion(config.dat_share_port) if config.dat_share_port else None
        self.coordinator = ShellCoordinator(config, companion=companion)
        self.control_server = ControlServer(self.coordinator)
        self.window = HeadlessWindow(self.coordinator, record_proxy=record_proxy)
        self._stop_event: asyncio.Event | None = None

    def request_stop(self) -> None:
        logger.info("Shutdown signal received")
        if self._stop_event is not None:
            self._stop_event.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.request_stop))

    async def run(self) -> int:
        """
        Start everything and wait for a shutdown signal.

        Returns:
            Process exit code (1 if the backend failed to start)
        """
        self._stop_event = asyncio.Event()
        self._install_signal_handlers()

        logger.info("=" * 60)
        logger.info(f"Recorder Desktop Shell {__version__} - Starting")
        logger.info("=" * 60)

        await self.control_server.start(self.config.control_host, self.config.control_port)

        exit_code = 0
        try:
            result = await self.coordinator.start(window_factory=self.window.show)
            logger.info(f"READY - backend at {result.endpoint_url}")
        except StartupError as e:
            # Keep the control channel up so the failure can be inspected.
            logger.error(f"{e} - see /api/diagnostics for the backend log")
            exit_code = 1

        try:
            await self._stop_event.wait()
        finally:
            self.window.close()
            await self.coordinator.close()
            await self.control_server.stop()

        return exit_code


def build_config(args: argparse.Namespace) -> ShellConfig:
    config = ShellConfig()

    if args.backend:
        config.backend_binary = Path(args.backend).expanduser()
    if args.data_dir:
        config.data_dir = Path(args.data_dir).expanduser()
    if args.control_port is not None:
        config.control_port = args.control_port
    if args.dat_share_port is not None:
        config.dat_share_port = args.dat_share_port
    if args.log_level:
        config.log_level = args.log_level

    return config.validate()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recorder Desktop Shell - backend supervisor and proxy router",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Use python-binaries/webrecorder
  %(prog)s --backend ./webrecorder  # Custom backend binary
  %(prog)s --record-proxy           # Capture live browsing from the start
  %(prog)s --dat-share-port 3282    # Enable peer sharing via a running companion
        """,
    )
    parser.add_argument("--backend", help="Path to the backend binary")
    parser.add_argument("--data-dir", help="Backend data directory")
    parser.add_argument("--control-port", type=int, help="Control channel port (0 = any)")
    parser.add_argument(
        "--dat-share-port", type=int, help="Port of a running peer-sharing companion (0 = none)"
    )
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument(
        "--record-proxy",
        action="store_true",
        help="Route the record session through the backend immediately",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 2

    setup_logging(config.logging_config())

    app = Application(config, record_proxy=args.record_proxy)
    return asyncio.run(app.run())


if __name__ == "__main__":
    sys.exit(main())
