"""
Port announcement parser for backend stdout.

The backend binds port 0 and prints a single line announcing where it ended
up listening:

    APP_HOST=http://localhost:54321

That line is the only structured contract the backend exposes, so every
stdout chunk is scanned for it until the first match.
"""

import logging

from core.debug_log import DebugLog
from core.discovery import DiscoveryResult

logger = logging.getLogger(__name__)

APP_HOST_SENTINEL = "APP_HOST=http://localhost:"


def decode_chunk(chunk: bytes | str) -> str:
    if isinstance(chunk, bytes):
        return chunk.decode("utf-8", errors="replace")
    return chunk


def extract_port(text: str) -> int | None:
    """
    Extract the announced port from a chunk of output.

    The chunk must contain the sentinel exactly once; zero or several
    occurrences are treated as no match.

    Returns:
        Port number, or None when the chunk does not announce a usable port
    """
    parts = text.split(APP_HOST_SENTINEL)
    if len(parts) != 2:
        return None

    candidate = parts[1].strip().rstrip("/")
    if not candidate.isdigit():
        logger.warning(f"Ignoring malformed port announcement: {candidate!r}")
        return None

    port = int(candidate)
    if not 0 < port < 65536:
        logger.warning(f"Ignoring out-of-range port announcement: {port}")
        return None

    return port


class PortAnnouncementParser:
    """
    Feeds backend stdout into the debug log and watches for the port.

    Once a port has been found the parser stops looking; later chunks,
    including further announcements, only reach the debug log.
    """

    def __init__(self, debug_log: DebugLog):
        self.debug_log = debug_log
        self._result: DiscoveryResult | None = None

    @property
    def resolved(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> DiscoveryResult | None:
        return self._result

    def feed(self, chunk: bytes | str) -> DiscoveryResult | None:
        """
        Record a stdout chunk and try to discover the backend port.

        Args:
            chunk: Raw output from the backend

        Returns:
            DiscoveryResult on the first successful match, otherwise None
        """
        text = decode_chunk(chunk)
        if not text:
            return None

        logger.debug(f"backend: {text.rstrip()}")
        self.debug_log.append(text)

        if self._result is not None:
            return None

        port = extract_port(text)
        if port is None:
            return None

        self._result = DiscoveryResult.from_port(port)
        return self._result
