"""
Shared version state.

A ``VersionCell`` is the handle the transport reads before each request and
writes after each response. Transports constructed with the same cell see one
known version. ``get_client_registry()`` hands out a single process-wide
registry holding such a cell, stored in the interpreter-wide ``builtins``
namespace so that separately imported copies of this package still share it.
"""

import builtins
import threading
from typing import Optional

from .config import ClientConfig

INITIAL_VERSION = "0"

# Attributes under which the process-wide registry and its lock live on ``builtins``
_REGISTRY_ATTR = "__gwadmin_client_registry__"
_LOCK_ATTR = "__gwadmin_client_registry_lock__"


def _registry_lock() -> threading.Lock:
    # dict.setdefault is atomic, so every copy of this module gets the same lock
    return vars(builtins).setdefault(_LOCK_ATTR, threading.Lock())


class VersionCell:
    """
    Mutable holder of the last known server version.

    No lock: reads happen when a request is built and writes happen within a
    single response-handling step, and last writer wins. The value is only
    the hint sent on the next request; the server re-checks every write.
    """

    def __init__(self, version: str = INITIAL_VERSION):
        self._version = version

    @property
    def version(self) -> str:
        return self._version

    def adopt(self, version: str) -> bool:
        """Store ``version``; returns True if it differed from the known one."""
        if version == self._version:
            return False
        self._version = version
        return True

    def reset(self):
        self._version = INITIAL_VERSION

    def __repr__(self):
        return f"VersionCell(version={self._version!r})"


class ClientRegistry:
    """Process-wide holder of the active client configuration and known version."""

    def __init__(self):
        self.version = VersionCell()
        self.config: Optional[ClientConfig] = None

    def configure(self, config: ClientConfig):
        """Set the configuration used by clients built without an explicit one."""
        self.config = config

    def active_config(self) -> ClientConfig:
        if self.config is None:
            self.config = ClientConfig()
        return self.config


def get_client_registry() -> ClientRegistry:
    """
    Get the process-wide registry, creating it on first access.

    Returns:
        The same ClientRegistry instance for every caller in this interpreter
    """
    registry = getattr(builtins, _REGISTRY_ATTR, None)
    if registry is not None:
        return registry

    with _registry_lock():
        registry = getattr(builtins, _REGISTRY_ATTR, None)
        if registry is None:
            registry = ClientRegistry()
            setattr(builtins, _REGISTRY_ATTR, registry)
    return registry


def reset_client_registry():
    """Drop the process-wide registry (for testing)."""
    with _registry_lock():
        if hasattr(builtins, _REGISTRY_ATTR):
            delattr(builtins, _REGISTRY_ATTR)
