"""
Session Router - points the record and replay sessions at the backend.

The replay session is always proxied through the backend because replayed
content only exists behind it. The record session starts direct and is
switched onto the proxy after the operator consents; the user can then
toggle capture on and off at runtime.
"""

import logging

from browser.sessions import DIRECT, NetworkSession, ProxyConfig, SessionRegistry, partition_name
from core.errors import RouteError

logger = logging.getLogger(__name__)


class SessionRouter:
    """
    Installs and toggles the backend proxy rule.

    Usage:
        router = SessionRouter(SessionRegistry(), username="alice")
        await router.install_route(port)       # replay session, permanent
        await router.install_record_route()    # record session, after consent
        await router.toggle_route(False)       # stop capturing
    """

    def __init__(self, registry: SessionRegistry, username: str):
        self.registry = registry
        self.username = username
        self.replay_session: NetworkSession = registry.from_partition(
            partition_name(username, replay=True), cache=True
        )
        self.record_session: NetworkSession = registry.from_partition(
            partition_name(username), cache=True
        )
        self._proxy_config: ProxyConfig | None = None
        self._record_enabled = False

    @property
    def proxy_config(self) -> ProxyConfig | None:
        """Standing rule pointing at the backend (None until installed)."""
        return self._proxy_config

    @property
    def record_enabled(self) -> bool:
        return self._record_enabled

    @property
    def installed(self) -> bool:
        return self._proxy_config is not None

    async def install_route(self, port: int) -> ProxyConfig:
        """
        Build the standing rule and apply it to the replay session.

        Raises:
            RouteError: If a route for a different port is already installed
        """
        config = ProxyConfig.for_port(port)
        if self._proxy_config is not None and self._proxy_config != config:
            raise RouteError(
                f"Route already installed ({self._proxy_config.proxy_rules}); "
                f"refusing to replace it with {config.proxy_rules}"
            )

        self._proxy_config = config
        await self.replay_session.set_proxy(config)
        logger.info(f"Replay session routed through {config.proxy_rules}")
        return config

    def _require_route(self) -> ProxyConfig:
        if self._proxy_config is None:
            raise RouteError("No backend route installed yet")
        return self._proxy_config

    async def install_record_route(self) -> ProxyConfig:
        """Apply the standing rule to the record session."""
        return await self.toggle_route(True)

    async def toggle_route(self, enabled: bool) -> ProxyConfig:
        """
        Route the record session through the backend, or directly.

        Returns once the session has applied the new config.

        Raises:
            RouteError: If install_route() has not run yet
        """
        standing = self._require_route()
        config = standing if enabled else DIRECT

        await self.record_session.set_proxy(config)
        self._record_enabled = enabled
        logger.info(f"Record session proxy {'enabled' if enabled else 'disabled'}: {config.to_dict()}")
        return config

    async def clear_cookies(self, is_replay: bool = False) -> str:
        """
        Clear all storage data for the record or replay partition.

        Returns:
            Partition that was cleared
        """
        session = self.replay_session if is_replay else self.record_session
        await session.clear_storage_data()
        return session.partition

    def to_dict(self) -> dict:
        return {
            "record_partition": self.record_session.partition,
            "replay_partition": self.replay_session.partition,
            "proxy": self._proxy_config.to_dict() if self._proxy_config else {},
            "record_enabled": self._record_enabled,
        }
