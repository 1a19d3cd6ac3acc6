"""
Connector Configuration — validated listener settings.

Reads settings from environment variables:
    VAULT_CONNECT_ENABLED = true|false
    VAULT_CONNECT_HOST = <loopback host>
    VAULT_CONNECT_PORT = <integer>
    VAULT_CONNECT_PATH = <url path>
    VAULT_CONNECT_ORIGIN = <scheme://host[:port]>
"""
import os
import logging
import ipaddress

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("vault_connect.config")

_LOOPBACK_NAMES = frozenset({"localhost", "localhost.localdomain"})
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def is_loopback(host: str) -> bool:
    """Return True if host names or addresses the local machine."""
    if host.lower() in _LOOPBACK_NAMES:
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


class ConnectorConfig(BaseModel):
    """Validated connector configuration."""

    enabled: bool = True
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=19455, ge=1, le=65535)
    path: str = Field(default="/")
    origin: str = Field(default="http://localhost", min_length=1)

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Only loopback interfaces may be bound."""
        if not is_loopback(v):
            raise ValueError(f"Connector must listen on a loopback host, got {v}")
        return v

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Path must start with '/': {v}")
        return v

    @field_validator("origin")
    @classmethod
    def validate_origin(cls, v: str) -> str:
        """Origins are compared verbatim, so reject a trailing slash."""
        if v.endswith("/"):
            raise ValueError(f"Origin must not end with '/': {v}")
        return v

    @classmethod
    def from_env(cls) -> "ConnectorConfig":
        """Create ConnectorConfig by loading values from environment.

        Returns:
            Populated ConnectorConfig instance.
        """
        config = cls(
            enabled=_env_bool("VAULT_CONNECT_ENABLED", True),
            host=os.environ.get("VAULT_CONNECT_HOST", "127.0.0.1"),
            port=int(os.environ.get("VAULT_CONNECT_PORT", "19455")),
            path=os.environ.get("VAULT_CONNECT_PATH", "/"),
            origin=os.environ.get("VAULT_CONNECT_ORIGIN", "http://localhost"),
        )
        logger.debug(
            "Loaded connector config: host=%s port=%d origin=%s enabled=%s",
            config.host, config.port, config.origin, config.enabled,
        )
        return config
