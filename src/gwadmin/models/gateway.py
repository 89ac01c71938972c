"""
Gateway, listener and protocol models.
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from ..identity import PluginInstanceId
from .base import WireModel


class TlsMode(str, Enum):
    TERMINATE = "Terminate"
    PASSTHROUGH = "Passthrough"


class TlsConfig(WireModel):
    mode: TlsMode = TlsMode.PASSTHROUGH
    key: str
    cert: str


class HttpProtocol(WireModel):
    """Cleartext HTTP listener. Carries no TLS configuration."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["http"] = "http"


class HttpsProtocol(WireModel):
    """TLS listener; ``tls`` is mandatory."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["https"] = "https"
    tls: TlsConfig


ProtocolConfig = Annotated[Union[HttpProtocol, HttpsProtocol], Field(discriminator="type")]


class Listener(WireModel):
    name: str
    ip: Optional[str] = None
    port: int = Field(..., ge=0, le=65535)
    protocol: ProtocolConfig = Field(default_factory=HttpProtocol)
    hostname: Optional[str] = None


class GatewayParameters(WireModel):
    redis_url: Optional[str] = None
    log_level: Optional[str] = None
    lang: Optional[str] = None
    ignore_tls_verification: Optional[bool] = None
    enable_x_request_id: Optional[bool] = None


class Gateway(WireModel):
    """Listener and protocol settings of one gateway, plus gateway-wide plugins."""

    name: str
    parameters: GatewayParameters = Field(default_factory=GatewayParameters)
    listeners: List[Listener] = Field(default_factory=list)
    plugins: List[PluginInstanceId] = Field(default_factory=list)
