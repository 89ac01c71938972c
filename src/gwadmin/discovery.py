"""
Gateway instance discovery and reload triggers.
"""

from typing import Any, Dict, List

from pydantic import TypeAdapter

from .transport import VersionedTransport

_health_adapter = TypeAdapter(Dict[str, bool])
_names_adapter = TypeAdapter(List[str])


class DiscoveryApi:
    """Operations on the running gateway instances known to the admin server."""

    def __init__(self, transport: VersionedTransport):
        self.transport = transport

    async def instance_health(self) -> Dict[str, bool]:
        """Health of every instance, keyed by instance id."""
        response = await self.transport.request("GET", "/discovery/instance/health")
        return _health_adapter.validate_python(response.json())

    async def instance_list(self) -> List[str]:
        response = await self.transport.request("GET", "/discovery/instance/list")
        return _names_adapter.validate_python(response.json())

    async def reload_global(self, instance: str) -> None:
        await self.transport.request(
            "GET", "/discovery/instance/reload/global", params={"instance": instance}
        )

    async def reload_gateway(self, instance: str, gateway: str) -> None:
        await self.transport.request(
            "GET",
            "/discovery/instance/reload/gateway",
            params={"instance": instance, "gateway": gateway},
        )

    async def reload_route(self, instance: str, gateway: str, route: str) -> None:
        await self.transport.request(
            "GET",
            "/discovery/instance/reload/route",
            params={"instance": instance, "gateway": gateway, "route": route},
        )

    async def backends(self) -> List[Dict[str, Any]]:
        """Backend host descriptors discovered by the server, passed through as-is."""
        response = await self.transport.request("GET", "/discovery/backends/")
        return response.json()
