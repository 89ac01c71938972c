"""
AdminClient: one object bundling the transport and the API groups built on it.
"""

from typing import Any, Dict, Optional

import httpx

from .auth import AuthApi
from .config import ClientConfig
from .discovery import DiscoveryApi
from .logging import EventType, get_logger
from .metrics import get_metrics
from .registry import VersionCell, get_client_registry
from .repository import ConfigRepository
from .transport import VersionedTransport


class AdminClient:
    """
    Client for the gateway admin API.

    Example:
        async with AdminClient(ClientConfig(base_url="http://admin:9991")) as client:
            route = await client.config.get_route("default", "api")
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        version: Optional[VersionCell] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.transport = VersionedTransport(config, version=version, transport=transport)
        self.config = ConfigRepository(self.transport)
        self.auth = AuthApi(self.transport)
        self.discovery = DiscoveryApi(self.transport)
        self.logger = get_logger()

    @classmethod
    def from_registry(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AdminClient":
        """Build a client from the process-wide registry's config and version cell."""
        registry = get_client_registry()
        return cls(registry.active_config(), version=registry.version, transport=transport)

    @property
    def known_version(self) -> str:
        return self.transport.known_version

    def metrics(self) -> Dict[str, Any]:
        """Snapshot of exchange and version protocol statistics for this process."""
        return get_metrics().snapshot()

    async def login(self) -> Optional[str]:
        """Log in with the configured access key / secret key, if any."""
        settings = self.transport.config
        if settings.access_key is None or settings.secret_key is None:
            return None
        return await self.auth.login(settings.access_key, settings.secret_key)

    async def aclose(self):
        await self.transport.aclose()
        self.logger.debug("Admin client closed", event_type=EventType.CLIENT_CLOSE)

    async def __aenter__(self):
        self.logger.debug(
            f"Admin client opened for {self.transport.config.base_url}",
            event_type=EventType.CLIENT_OPEN,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
