"""
Window reference counting - releases the backend with the last window.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class WindowReferenceCounter:
    """
    Counts visible windows and fires a callback when the last one closes.

    The callback runs only on the 1 -> 0 transition; closing a window while
    others remain open does nothing.

    Usage:
        counter = WindowReferenceCounter(on_last_closed=supervisor.stop)
        counter.window_shown()
        counter.window_destroyed()  # calls supervisor.stop()
    """

    def __init__(self, on_last_closed: Callable[[], None] | None = None):
        self._count = 0
        self.on_last_closed = on_last_closed

    @property
    def count(self) -> int:
        return self._count

    def window_shown(self) -> int:
        self._count += 1
        logger.debug(f"Window shown, {self._count} open")
        return self._count

    def window_destroyed(self) -> int:
        if self._count == 0:
            logger.warning("Window destroyed with no windows open, ignoring")
            return 0

        self._count -= 1
        if self._count > 0:
            logger.info(f"More windows remain: {self._count}")
            return self._count

        logger.info("Last window closed")
        if self.on_last_closed:
            self.on_last_closed()
        return 0
