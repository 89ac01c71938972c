"""
Plugin instance identities and their wire encodings.

A plugin instance is addressed by its plugin ``code`` plus at most one of a
numeric ``uid`` or a ``name``. The three variants are separate types so every
encode/decode site matches on them exhaustively:

    AnonPluginId(code, uid)   -> {code, uid}
    NamedPluginId(code, name) -> {code, name}
    MonoPluginId(code)        -> {code}

uids are unsigned 64-bit integers. They are never converted through float and
are written as decimal strings, so consumers that parse JSON numbers into
doubles cannot round them.
"""

from typing import Annotated, Any, ClassVar, Dict, Mapping, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer, field_validator

UID_LIMIT = 2**64
NAME_PATTERN = r"^[A-Za-z0-9-]+$"

# Keys that make up an identity on the wire; any other key is ignored.
RECOGNIZED_KEYS = ("code", "uid", "name")


class AnonPluginId(BaseModel):
    """Plugin instance addressed by a server-assigned numeric uid."""

    model_config = ConfigDict(frozen=True)
    kind: ClassVar[str] = "anon"

    code: str = Field(..., min_length=1, description="Plugin type")
    uid: int = Field(..., ge=0, lt=UID_LIMIT, description="Unsigned 64-bit instance uid")

    @field_validator("uid", mode="before")
    @classmethod
    def parse_uid(cls, v):
        if isinstance(v, bool) or isinstance(v, float):
            raise ValueError("uid must be an integer or a decimal string")
        if isinstance(v, str):
            if not v.isdigit():
                raise ValueError(f"uid is not a decimal integer: {v!r}")
            return int(v)
        return v

    @field_serializer("uid")
    def serialize_uid(self, uid: int) -> str:
        return str(uid)


class NamedPluginId(BaseModel):
    """Plugin instance addressed by a name unique within its code."""

    model_config = ConfigDict(frozen=True)
    kind: ClassVar[str] = "named"

    code: str = Field(..., min_length=1, description="Plugin type")
    name: str = Field(..., pattern=NAME_PATTERN, description="Alphanumerics and hyphens")


class MonoPluginId(BaseModel):
    """The single instance of a plugin code."""

    model_config = ConfigDict(frozen=True)
    kind: ClassVar[str] = "mono"

    code: str = Field(..., min_length=1, description="Plugin type")


_VARIANTS = (AnonPluginId, NamedPluginId, MonoPluginId)


def identity_from_fields(fields: Mapping[str, Any]) -> Union[AnonPluginId, NamedPluginId, MonoPluginId]:
    """
    Decode an identity from server-echoed fields.

    The variant is chosen by which of ``uid``/``name`` is present. An optional
    ``kind`` tag (``anon``/``named``/``mono``) is accepted and must agree.

    Raises:
        ValueError: both ``uid`` and ``name`` present, missing ``code``, or a
            ``kind`` tag that contradicts the fields.
    """
    code = fields.get("code")
    if not isinstance(code, str) or not code:
        raise ValueError("plugin identity requires a non-empty string code")

    uid = fields.get("uid")
    name = fields.get("name")
    if uid is not None and name is not None:
        raise ValueError("plugin identity carries both uid and name")

    if uid is not None:
        identity = AnonPluginId(code=code, uid=uid)
    elif name is not None:
        identity = NamedPluginId(code=code, name=name)
    else:
        identity = MonoPluginId(code=code)

    kind = fields.get("kind")
    if kind is not None and kind != identity.kind:
        raise ValueError(f"kind {kind!r} does not match identity fields ({identity.kind})")
    return identity


def _coerce_identity(value: Any):
    if isinstance(value, _VARIANTS):
        return value
    if isinstance(value, Mapping):
        return identity_from_fields(value)
    raise ValueError(f"not a plugin instance id: {value!r}")


PluginInstanceId = Annotated[
    Union[AnonPluginId, NamedPluginId, MonoPluginId], BeforeValidator(_coerce_identity)
]


def identity_fields(identity) -> Dict[str, Any]:
    """Return the identity's wire fields, keeping ``uid`` as an int."""
    if isinstance(identity, AnonPluginId):
        return {"code": identity.code, "uid": identity.uid}
    elif isinstance(identity, NamedPluginId):
        return {"code": identity.code, "name": identity.name}
    elif isinstance(identity, MonoPluginId):
        return {"code": identity.code}
    raise TypeError(f"not a plugin instance id: {identity!r}")


def identity_as_query(identity) -> Dict[str, str]:
    """
    Encode an identity as query parameters for the flat plugin namespace.

    Accepts an identity variant or a plain mapping. Only ``code``, ``uid`` and
    ``name`` are looked at; integers are rendered with ``str()`` so large uids
    stay exact, strings are copied verbatim. Each key appears at most once.

    Raises:
        TypeError: a recognized key holds something other than int or str.
        ValueError: a mapping carries both ``uid`` and ``name``.
    """
    if isinstance(identity, Mapping):
        fields = identity
        if fields.get("uid") is not None and fields.get("name") is not None:
            raise ValueError("plugin identity carries both uid and name")
    else:
        fields = identity_fields(identity)

    query: Dict[str, str] = {}
    for key in RECOGNIZED_KEYS:
        if key not in fields or fields[key] is None:
            continue
        value = fields[key]
        if isinstance(value, bool):
            raise TypeError(f"{key} must be int or str, got bool")
        if isinstance(value, int):
            query[key] = str(value)
        elif isinstance(value, str):
            query[key] = value
        else:
            raise TypeError(f"{key} must be int or str, got {type(value).__name__}")
    return query


def instance_key(identity) -> str:
    """Key of an instance in the server's plugin map, e.g. ``limit-a-42``."""
    if isinstance(identity, AnonPluginId):
        return f"{identity.code}-a-{identity.uid}"
    elif isinstance(identity, NamedPluginId):
        return f"{identity.code}-n-{identity.name}"
    elif isinstance(identity, MonoPluginId):
        return f"{identity.code}-m"
    raise TypeError(f"not a plugin instance id: {identity!r}")


def parse_instance_key(code: str, key: str) -> Union[AnonPluginId, NamedPluginId, MonoPluginId]:
    """
    Parse a plugin map key produced by :func:`instance_key`.

    ``code`` comes from the map value, since codes may contain hyphens
    themselves. The legacy ``g`` marker is read as a mono instance.
    """
    if not key.startswith(code):
        raise ValueError(f"key {key!r} does not start with code {code!r}")

    # Exactly one separator; names may themselves start or end with hyphens
    rest = key[len(code):]
    if not rest.startswith("-") or len(rest) == 1:
        raise ValueError(f"key {key!r} has no instance part")
    rest = rest[1:]

    marker, _, value = rest.partition("-")
    if marker == "a":
        if not value:
            raise ValueError(f"key {key!r} is missing a uid")
        return AnonPluginId(code=code, uid=value)
    elif marker == "n":
        if not value:
            raise ValueError(f"key {key!r} is missing a name")
        return NamedPluginId(code=code, name=value)
    elif marker in ("m", "g"):
        return MonoPluginId(code=code)
    raise ValueError(f"key {key!r} has an unknown instance marker {marker!r}")
