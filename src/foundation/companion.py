"""
Peer-sharing companion service hook.

When a companion sharing service is available it binds its own ephemeral
port before the backend starts, and the backend is told about it with
``--dat-share-port``. The companion is optional: if it fails to start the
backend still runs, just without peer sharing.
"""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class CompanionService(Protocol):
    async def start(self) -> int | None:
        """Start the companion and return the port it bound."""
        ...


class StaticCompanion:
    """Companion already running elsewhere on a known port."""

    def __init__(self, port: int):
        self.port = port

    async def start(self) -> int | None:
        return self.port


async def start_companion(companion: CompanionService | None) -> int | None:
    """
    Start the companion, tolerating failure.

    Returns:
        Companion port, or None if there is none or it failed to start
    """
    if companion is None:
        return None

    try:
        port = await companion.start()
    except Exception as e:
        logger.warning(f"Error loading peer-sharing companion (already running on same port?): {e}")
        return None

    if port:
        logger.info(f"Peer-sharing companion listening on port {port}")
    return port
