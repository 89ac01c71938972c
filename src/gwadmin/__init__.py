from .client import AdminClient
from .config import ClientConfig, load_config
from .errors import AdminClientError, TransportError, Unauthorized, VersionConflict
from .identity import (
    AnonPluginId,
    MonoPluginId,
    NamedPluginId,
    PluginInstanceId,
    identity_as_query,
    identity_from_fields,
    instance_key,
    parse_instance_key,
)
from .registry import ClientRegistry, VersionCell, get_client_registry
from .repository import ConfigRepository
from .transport import VersionedTransport

__all__ = [
    "AdminClient",
    "ClientConfig",
    "load_config",
    "AdminClientError",
    "TransportError",
    "Unauthorized",
    "VersionConflict",
    "AnonPluginId",
    "MonoPluginId",
    "NamedPluginId",
    "PluginInstanceId",
    "identity_as_query",
    "identity_from_fields",
    "instance_key",
    "parse_instance_key",
    "ClientRegistry",
    "VersionCell",
    "get_client_registry",
    "ConfigRepository",
    "VersionedTransport",
]
