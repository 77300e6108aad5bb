"""
Port discovery result and the write-once cell that carries it.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from core.errors import OneShotPendingError

T = TypeVar("T")


@dataclass(frozen=True)
class DiscoveryResult:
    """Backend endpoint learned from its own log output."""

    port: int
    endpoint_url: str

    @classmethod
    def from_port(cls, port: int) -> "DiscoveryResult":
        return cls(port=port, endpoint_url=f"http://localhost:{port}/")

    def to_dict(self) -> dict[str, Any]:
        return {"port": self.port, "appUrl": self.endpoint_url}


class OneShot(Generic[T]):
    """
    Single-assignment completion cell.

    The first ``set_result``/``set_exception`` wins; every later attempt is
    a no-op that returns False. Waiters suspend on ``wait()`` without
    blocking the event loop.

    Usage:
        cell: OneShot[DiscoveryResult] = OneShot()
        cell.set_result(result)      # True
        cell.set_result(other)       # False, ignored
        value = await cell.wait()
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[T] | None = None

    def _get_future(self) -> "asyncio.Future[T]":
        # Bound lazily so the cell can be built outside a running loop.
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def set_result(self, value: T) -> bool:
        future = self._get_future()
        if future.done():
            return False
        future.set_result(value)
        return True

    def set_exception(self, exc: BaseException) -> bool:
        future = self._get_future()
        if future.done():
            return False
        future.set_exception(exc)
        return True

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self) -> T:
        """
        Return the stored value.

        Raises:
            OneShotPendingError: If the cell has not been completed yet
            Exception: The stored exception, if the cell failed
        """
        if not self.done():
            raise OneShotPendingError("One-shot cell has not been completed")
        return self._future.result()

    def exception(self) -> BaseException | None:
        if not self.done():
            return None
        return self._future.exception()

    async def wait(self) -> T:
        # shield: cancelling one waiter must not cancel the shared future
        return await asyncio.shield(self._get_future())

    def __repr__(self) -> str:
        if not self.done():
            return "OneShot(pending)"
        if self._future.exception() is not None:
            return f"OneShot(failed={self._future.exception()!r})"
        return f"OneShot(result={self._future.result()!r})"
