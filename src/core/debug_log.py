"""
DebugLog - Bounded buffer of recent backend output

Keeps the most recent lines written by the backend process (stdout, stderr
and spawn errors) so they can be shown in the diagnostics view without
unbounded memory growth while the backend runs for hours.
"""

import logging
import threading
from collections import deque

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 500
STDERR_PREFIX = "stderr: "


class DebugLog:
    """
    Circular line buffer for backend diagnostics

    Features:
    - Fixed capacity (default: 500 lines), oldest line evicted first
    - Chunks are split into lines before storage
    - Plain text and HTML renderings for the diagnostics query

    Writers run on the event loop; the lock only protects readers that
    query from another thread (e.g. a toolkit callback).
    """

    def __init__(self, max_lines: int = DEFAULT_MAX_LINES):
        """
        Initialize debug log

        Args:
            max_lines: Maximum number of lines retained (default: 500)
        """
        if max_lines <= 0:
            raise ValueError(f"Debug log size must be positive, got {max_lines}")

        self.max_lines = max_lines
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._lock = threading.RLock()

    def append(self, text: str, prefix: str = "") -> int:
        """
        Append a chunk of output (evicts oldest lines if full)

        Args:
            text: Raw chunk, may contain several lines
            prefix: Optional marker prepended to every line

        Returns:
            Number of lines appended
        """
        lines = [line.rstrip("\r") for line in text.splitlines()]
        if not lines:
            return 0

        with self._lock:
            for line in lines:
                self._lines.append(f"{prefix}{line}")
        return len(lines)

    def append_stderr(self, text: str) -> int:
        """Append a stderr chunk, marking each line as stderr output."""
        return self.append(text, prefix=STDERR_PREFIX)

    def record_error(self, message: str) -> None:
        """Record an error raised while managing the backend."""
        logger.error(message)
        self.append(message)

    def get_lines(self, n: int | None = None) -> list[str]:
        """
        Get latest N lines (or all if n=None)

        Returns:
            Lines oldest first, newest last
        """
        with self._lock:
            if n is None:
                return list(self._lines)
            if n <= 0:
                return []
            return list(self._lines)[-n:]

    def text(self) -> str:
        """All retained lines joined with newlines."""
        with self._lock:
            return "\n".join(self._lines)

    def html_text(self) -> str:
        """All retained lines with line breaks rendered as <BR>."""
        return self.text().replace("\n", "<BR>")

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
            logger.debug("DebugLog cleared")

    def is_full(self) -> bool:
        with self._lock:
            return len(self._lines) >= self.max_lines

    def get_size(self) -> int:
        with self._lock:
            return len(self._lines)

    def get_max_size(self) -> int:
        return self.max_lines

    def __len__(self) -> int:
        return self.get_size()

    def __bool__(self) -> bool:
        return self.get_size() > 0

    def __repr__(self) -> str:
        return f"DebugLog(size={self.get_size()}/{self.max_lines})"
