"""
Typed operations over the gateway configuration hierarchy.

Gateways, routes and whole configs are addressed by path; plugin instances
live in a flat namespace addressed by query parameters built from their
identity. Every call goes through the versioned transport, so writes are
subject to conflict detection and reads refresh the known version.

A write that raises ``VersionConflict`` must be preceded by a fresh read of
the target before it is retried.
"""

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, TypeAdapter

from .identity import RECOGNIZED_KEYS, identity_as_query, identity_from_fields
from .models import Config, ConfigItem, Gateway, PluginAttributes, PluginConfig, Route
from .transport import VersionedTransport

M = TypeVar("M", bound=BaseModel)

_names_adapter = TypeAdapter(List[str])
_routes_adapter = TypeAdapter(Dict[str, Route])
_plugin_configs_adapter = TypeAdapter(List[PluginConfig])
_plugin_attrs_adapter = TypeAdapter(List[PluginAttributes])


def _segment(value: str) -> str:
    return quote(value, safe="")


def _item_path(gateway_name: str) -> str:
    return f"/config/item/{_segment(gateway_name)}"


def _route_path(gateway_name: str, route_name: str) -> str:
    return f"{_item_path(gateway_name)}/route/item/{_segment(route_name)}"


def _requested_identity(identity):
    """Validate a mapping into an identity variant; variants pass through."""
    if isinstance(identity, Mapping):
        return identity_from_fields(identity)
    return identity


def _is_record_of(identity, data: Any) -> bool:
    if not isinstance(data, Mapping) or "spec" not in data or data.get("code") != identity.code:
        return False
    try:
        echoed = identity_from_fields({k: data[k] for k in RECOGNIZED_KEYS if k in data})
    except ValueError:
        return False
    return echoed == identity


class ConfigRepository:
    """Config, route, plugin-instance and plugin-catalog operations."""

    def __init__(self, transport: VersionedTransport):
        self.transport = transport

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        response = await self.transport.request("GET", path, params=params)
        return response.json()

    async def _get_optional(
        self, model: Type[M], path: str, params: Optional[Dict[str, str]] = None
    ) -> Optional[M]:
        data = await self._get_json(path, params)
        if data is None:
            return None
        return model.model_validate(data)

    # --- whole config -------------------------------------------------

    async def get_config(self) -> Config:
        return Config.model_validate(await self._get_json("/config"))

    async def post_config(self, config: Config) -> None:
        await self.transport.request("POST", "/config", body=config.to_wire())

    async def put_config(self, config: Config) -> None:
        await self.transport.request("PUT", "/config", body=config.to_wire())

    async def get_config_names(self) -> List[str]:
        return _names_adapter.validate_python(await self._get_json("/config/names"))

    # --- config item (one gateway with its routes) --------------------

    async def get_config_item(self, gateway_name: str) -> Optional[ConfigItem]:
        return await self._get_optional(ConfigItem, _item_path(gateway_name))

    async def post_config_item(self, gateway_name: str, item: ConfigItem) -> None:
        await self.transport.request("POST", _item_path(gateway_name), body=item.to_wire())

    async def put_config_item(self, gateway_name: str, item: ConfigItem) -> None:
        await self.transport.request("PUT", _item_path(gateway_name), body=item.to_wire())

    async def delete_config_item(self, gateway_name: str) -> None:
        await self.transport.request("DELETE", _item_path(gateway_name))

    # --- gateway ------------------------------------------------------

    async def get_gateway(self, gateway_name: str) -> Optional[Gateway]:
        return await self._get_optional(Gateway, f"{_item_path(gateway_name)}/gateway")

    async def post_gateway(self, gateway_name: str, gateway: Gateway) -> None:
        await self.transport.request(
            "POST", f"{_item_path(gateway_name)}/gateway", body=gateway.to_wire()
        )

    async def put_gateway(self, gateway_name: str, gateway: Gateway) -> None:
        await self.transport.request(
            "PUT", f"{_item_path(gateway_name)}/gateway", body=gateway.to_wire()
        )

    async def delete_gateway(self, gateway_name: str) -> None:
        await self.transport.request("DELETE", f"{_item_path(gateway_name)}/gateway")

    # --- routes -------------------------------------------------------

    async def get_route(self, gateway_name: str, route_name: str) -> Optional[Route]:
        return await self._get_optional(Route, _route_path(gateway_name, route_name))

    async def post_route(self, gateway_name: str, route_name: str, route: Route) -> None:
        await self.transport.request(
            "POST", _route_path(gateway_name, route_name), body=route.to_wire()
        )

    async def put_route(self, gateway_name: str, route_name: str, route: Route) -> None:
        await self.transport.request(
            "PUT", _route_path(gateway_name, route_name), body=route.to_wire()
        )

    async def delete_route(self, gateway_name: str, route_name: str) -> None:
        await self.transport.request("DELETE", _route_path(gateway_name, route_name))

    async def get_route_names(self, gateway_name: str) -> List[str]:
        data = await self._get_json(f"{_item_path(gateway_name)}/route/names")
        return _names_adapter.validate_python(data)

    async def get_all_routes(self, gateway_name: str) -> Dict[str, Route]:
        data = await self._get_json(f"{_item_path(gateway_name)}/route/all")
        return _routes_adapter.validate_python(data)

    async def delete_all_routes(self, gateway_name: str) -> None:
        await self.transport.request("DELETE", f"{_item_path(gateway_name)}/route/all")

    # --- plugin instances (identity travels in the query string) ------

    async def get_plugin(self, identity) -> Optional[PluginConfig]:
        """
        Fetch one plugin instance.

        Servers answer either with the full ``{code, uid|name, spec}`` record
        or with the bare ``spec``. Since a spec is opaque and may itself carry
        ``code`` or ``spec`` keys, the payload only counts as a record when its
        identity fields decode to the requested identity; anything else is
        the spec of the requested instance.
        """
        identity = _requested_identity(identity)

        data = await self._get_json("/config/plugin", params=identity_as_query(identity))
        if data is None:
            return None
        if _is_record_of(identity, data):
            return PluginConfig(id=identity, spec=data["spec"])
        return PluginConfig(id=identity, spec=data)

    async def post_plugin(self, plugin: PluginConfig) -> None:
        await self.transport.request(
            "POST", "/config/plugin", params=identity_as_query(plugin.id), body=plugin.spec
        )

    async def put_plugin(self, plugin: PluginConfig) -> None:
        await self.transport.request(
            "PUT", "/config/plugin", params=identity_as_query(plugin.id), body=plugin.spec
        )

    async def delete_plugin(self, identity) -> None:
        if isinstance(identity, PluginConfig):
            identity = identity.id
        identity = _requested_identity(identity)
        await self.transport.request(
            "DELETE", "/config/plugin", params=identity_as_query(identity)
        )

    async def get_plugins_by_code(self, code: str) -> List[PluginConfig]:
        data = await self._get_json(f"/config/plugins/{_segment(code)}")
        return _plugin_configs_adapter.validate_python(data)

    async def get_all_plugins(self) -> List[PluginConfig]:
        return _plugin_configs_adapter.validate_python(await self._get_json("/config/plugin-all"))

    # --- plugin catalog -----------------------------------------------

    async def plugin_list(self) -> List[str]:
        return _names_adapter.validate_python(await self._get_json("/plugin/list"))

    async def plugin_attr_all(self) -> List[PluginAttributes]:
        return _plugin_attrs_adapter.validate_python(await self._get_json("/plugin/attr-all"))

    async def plugin_attr(self, code: str) -> Optional[PluginAttributes]:
        return await self._get_optional(PluginAttributes, f"/plugin/attr/{_segment(code)}")

    async def plugin_schema(self, code: str) -> Any:
        """JSON schema of a plugin's ``spec``, or None if the server has none."""
        return await self._get_json(f"/plugin/schema/{_segment(code)}")
