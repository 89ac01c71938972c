import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .logging import EventType, LogLevel, configure_logging, get_logger


class ClientConfig(BaseModel):
    base_url: str = "http://localhost:9991"
    timeout_seconds: float = Field(default=30.0, gt=0)
    verify_tls: bool = True

    # Version protocol
    client_version_header: str = Field(
        default="X-Client-Version", description="Request header carrying the known version"
    )
    server_version_header: str = Field(
        default="X-Server-Version", description="Response header carrying the server version"
    )
    conflict_status: int = Field(default=409, description="Status signalling a version conflict")
    unauthorized_status: int = Field(default=401, description="Status signalling auth failure")
    shared_version: bool = Field(
        default=True,
        description="Track the known version in the process-wide registry instead of per client",
    )

    # Credentials
    bearer_token: Optional[str] = Field(
        default=None, description="JWT sent as Authorization: Bearer <token>"
    )
    access_key: Optional[str] = None
    secret_key: Optional[str] = None

    log_level: str = "INFO"

    @field_validator("conflict_status", "unauthorized_status")
    @classmethod
    def validate_status(cls, v):
        if not 400 <= v <= 599:
            raise ValueError("designated statuses must be 4xx or 5xx")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


# Environment variable -> (config field, type)
_ENV_FIELDS = {
    "GWADMIN_BASE_URL": ("base_url", str),
    "GWADMIN_TIMEOUT_SECONDS": ("timeout_seconds", float),
    "GWADMIN_VERIFY_TLS": ("verify_tls", bool),
    "GWADMIN_CLIENT_VERSION_HEADER": ("client_version_header", str),
    "GWADMIN_SERVER_VERSION_HEADER": ("server_version_header", str),
    "GWADMIN_CONFLICT_STATUS": ("conflict_status", int),
    "GWADMIN_UNAUTHORIZED_STATUS": ("unauthorized_status", int),
    "GWADMIN_SHARED_VERSION": ("shared_version", bool),
    "GWADMIN_BEARER_TOKEN": ("bearer_token", str),
    "GWADMIN_ACCESS_KEY": ("access_key", str),
    "GWADMIN_SECRET_KEY": ("secret_key", str),
    "GWADMIN_LOG_LEVEL": ("log_level", str),
}


def load_config(config_path: str = "gwadmin.yml") -> ClientConfig:
    """Load client configuration from a YAML file with environment variable overrides."""
    logger = get_logger()
    config_data: Dict[str, Any] = {}

    try:
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        pass
    except (OSError, yaml.YAMLError) as e:
        logger.warning(
            f"Failed to load config from {config_path}: {e}",
            metadata={"config_path": config_path},
        )

    if not isinstance(config_data, dict):
        logger.warning(
            f"Ignoring config file {config_path}: top level is not a mapping",
            metadata={"config_path": config_path},
        )
        config_data = {}

    _apply_environment(config_data)

    config = ClientConfig(**config_data)
    configure_logging(LogLevel(config.log_level))
    logger.debug(
        "Client configuration loaded",
        event_type=EventType.CONFIG_LOADED,
        metadata={"config_path": config_path, "base_url": config.base_url},
    )
    return config


def _apply_environment(config_data: Dict[str, Any]):
    """Overlay GWADMIN_* environment variables onto raw config data."""
    logger = get_logger()

    for env_key, (config_field, field_type) in _ENV_FIELDS.items():
        env_value = os.getenv(env_key)
        if env_value is None:
            continue

        try:
            if field_type is bool:
                config_data[config_field] = env_value.lower() in ("true", "1", "yes", "on")
            elif field_type is int:
                config_data[config_field] = int(env_value)
            elif field_type is float:
                config_data[config_field] = float(env_value)
            else:
                config_data[config_field] = env_value
        except (ValueError, TypeError) as e:
            logger.warning(
                f"Invalid {field_type.__name__} value for {env_key}: {env_value} ({e})",
                metadata={"env_key": env_key},
            )
