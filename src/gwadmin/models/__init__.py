from .base import WireModel
from .config_item import Config, ConfigItem
from .gateway import (
    Gateway,
    GatewayParameters,
    HttpProtocol,
    HttpsProtocol,
    Listener,
    TlsConfig,
    TlsMode,
)
from .plugin import PluginAttributes, PluginConfig, PluginMetaData
from .route import BackendRef, Route, RouteMatch, Rule

__all__ = [
    "WireModel",
    "Config",
    "ConfigItem",
    "Gateway",
    "GatewayParameters",
    "HttpProtocol",
    "HttpsProtocol",
    "Listener",
    "TlsConfig",
    "TlsMode",
    "PluginAttributes",
    "PluginConfig",
    "PluginMetaData",
    "BackendRef",
    "Route",
    "RouteMatch",
    "Rule",
]
