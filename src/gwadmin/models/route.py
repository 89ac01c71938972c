"""
HTTP route models.

Ordering of ``plugins``, ``rules`` and ``backends`` is significant and kept as
given. ``priority`` and ``timeout_ms`` are carried through untouched: nothing
here defaults, clamps or reorders them.
"""

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from ..identity import PluginInstanceId
from .base import WireModel


class RouteMatch(WireModel):
    """Match conditions, carried opaquely; the route evaluator interprets them."""

    model_config = ConfigDict(extra="allow")

    path: Optional[Dict[str, Any]] = None
    header: Optional[List[Dict[str, Any]]] = None
    query: Optional[List[Dict[str, Any]]] = None
    method: Optional[List[str]] = None


class BackendRef(WireModel):
    """Backend target descriptor. Unknown fields survive a round-trip."""

    model_config = ConfigDict(extra="allow")

    host: Optional[Dict[str, Any]] = None
    port: Optional[int] = None
    timeout_ms: Optional[int] = None
    protocol: Optional[str] = None
    weight: Optional[int] = None
    plugins: Optional[List[PluginInstanceId]] = None


class Rule(WireModel):
    matches: Optional[List[RouteMatch]] = None
    plugins: List[PluginInstanceId] = Field(default_factory=list)
    backends: List[BackendRef] = Field(default_factory=list)
    timeout_ms: Optional[int] = Field(default=None, ge=0)


class Route(WireModel):
    route_name: str
    hostnames: Optional[List[str]] = None
    plugins: List[PluginInstanceId] = Field(default_factory=list)
    rules: List[Rule] = Field(default_factory=list)
    priority: int = Field(..., description="Higher wins among overlapping routes")

    @property
    def name(self) -> str:
        return self.route_name
