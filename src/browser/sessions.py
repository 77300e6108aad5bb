"""
Network sessions - isolated browsing contexts keyed by partition name.

Each partition has its own cookies, cache and proxy configuration. The
windowing toolkit owns the real network stack; it registers a listener on
each PartitionSession and applies whatever proxy config the shell sets.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

PARTITION_PREFIX = "persist:"
REPLAY_SUFFIX = "-replay"


def partition_name(username: str, replay: bool = False) -> str:
    """
    Partition key for a user's record or replay session.

    >>> partition_name("alice")
    'persist:alice'
    >>> partition_name("alice", replay=True)
    'persist:alice-replay'
    """
    suffix = REPLAY_SUFFIX if replay else ""
    return f"{PARTITION_PREFIX}{username}{suffix}"


@dataclass(frozen=True)
class ProxyConfig:
    """Proxy routing directive for one session (empty = direct)."""

    proxy_rules: str = ""

    @classmethod
    def for_port(cls, port: int, host: str = "localhost") -> ProxyConfig:
        return cls(proxy_rules=f"{host}:{port}")

    @property
    def is_empty(self) -> bool:
        return not self.proxy_rules

    def to_dict(self) -> dict[str, str]:
        if self.is_empty:
            return {}
        return {"proxyRules": self.proxy_rules}


DIRECT = ProxyConfig()


@runtime_checkable
class NetworkSession(Protocol):
    """What the router needs from a browsing session."""

    partition: str
    cache_enabled: bool

    @property
    def proxy_config(self) -> ProxyConfig: ...

    async def set_proxy(self, config: ProxyConfig) -> None: ...

    async def clear_storage_data(self) -> None: ...


SessionListener = Callable[[str, dict[str, Any]], Awaitable[None] | None]


@dataclass
class PartitionSession:
    """
    Shell-side view of one partition.

    Listeners are called as ``listener(event, payload)`` with events
    ``"proxy"`` (payload: proxy config dict) and ``"clear-storage"``.
    """

    partition: str
    cache_enabled: bool = True
    _proxy_config: ProxyConfig = field(default=DIRECT, repr=False)
    _listeners: list[SessionListener] = field(default_factory=list, repr=False)

    @property
    def proxy_config(self) -> ProxyConfig:
        return self._proxy_config

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self, event: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            result = listener(event, payload)
            if inspect.isawaitable(result):
                await result

    async def set_proxy(self, config: ProxyConfig) -> None:
        self._proxy_config = config
        logger.info(f"Proxy set for {self.partition}: {config.to_dict()}")
        await self._notify("proxy", config.to_dict())

    async def clear_storage_data(self) -> None:
        logger.info(f"Clearing storage data for {self.partition}")
        await self._notify("clear-storage", {"partition": self.partition})


class SessionRegistry:
    """One session object per partition name."""

    def __init__(self):
        self._sessions: dict[str, PartitionSession] = {}

    def from_partition(self, partition: str, cache: bool = True) -> PartitionSession:
        session = self._sessions.get(partition)
        if session is None:
            session = PartitionSession(partition=partition, cache_enabled=cache)
            self._sessions[partition] = session
            logger.debug(f"Created session for partition {partition} (cache={cache})")
        return session

    def partitions(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, partition: str) -> bool:
        return partition in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
