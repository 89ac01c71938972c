"""
Top-level configuration containers.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from ..identity import PluginInstanceId, parse_instance_key
from .base import WireModel
from .gateway import Gateway
from .plugin import PluginConfig
from .route import Route


class ConfigItem(WireModel):
    """One gateway and its routes, keyed by route name."""

    gateway: Gateway
    routes: Dict[str, Route] = Field(default_factory=dict)


class Config(WireModel):
    """The whole configuration: every gateway plus the global plugin instance map."""

    gateways: Dict[str, ConfigItem] = Field(default_factory=dict)
    plugins: Dict[str, PluginConfig] = Field(default_factory=dict)
    api_port: Optional[int] = Field(default=None, ge=0, le=65535)

    def plugin_instances(self) -> Dict[PluginInstanceId, Any]:
        """Plugin specs keyed by identity, parsed from the instance-map keys."""
        return {
            parse_instance_key(plugin.code, key): plugin.spec for key, plugin in self.plugins.items()
        }
