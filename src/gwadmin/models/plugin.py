"""
Plugin configuration and plugin catalog models.
"""

from typing import Any, Dict, Mapping, Optional

from pydantic import Field, model_serializer, model_validator

from ..identity import PluginInstanceId, identity_fields, identity_from_fields
from .base import WireModel


class PluginConfig(WireModel):
    """
    A plugin instance identity together with its opaque ``spec``.

    On the wire the identity is flattened next to ``spec``:
    ``{"code": "limit", "name": "per-ip", "spec": {...}}``.
    """

    id: PluginInstanceId
    spec: Any = Field(default=None, description="Plugin-defined configuration, passed through")

    @model_validator(mode="before")
    @classmethod
    def split_identity(cls, data):
        if isinstance(data, Mapping) and "id" not in data:
            fields = dict(data)
            spec = fields.pop("spec", None)
            return {"id": identity_from_fields(fields), "spec": spec}
        return data

    @model_serializer
    def flatten(self) -> Dict[str, Any]:
        wire = identity_fields(self.id)
        if "uid" in wire:
            wire["uid"] = str(wire["uid"])
        wire["spec"] = self.spec
        return wire

    @property
    def code(self) -> str:
        return self.id.code


class PluginMetaData(WireModel):
    authors: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    homepage: Optional[str] = None
    repository: Optional[str] = None


class PluginAttributes(WireModel):
    """Catalog entry describing a plugin type the gateway can instantiate."""

    code: str
    mono: bool = Field(default=False, description="Only a single instance may exist")
    meta: PluginMetaData = Field(default_factory=PluginMetaData)
