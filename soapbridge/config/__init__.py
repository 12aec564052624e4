"""
Configuration management for soapbridge.

This module provides a unified configuration system that supports:
- YAML configuration files
- Environment variable overrides (``SOAPBRIDGE_`` prefix, ``__`` nesting)
- Endpoint lookup by logical service name
- Transport settings that double as the channel factory cache signature
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TransportKind(str, Enum):
    """SOAP bindings a channel factory can speak."""

    BASIC_HTTP = "basic_http"  # SOAP 1.1
    WS_HTTP = "ws_http"  # SOAP 1.2


@dataclass(frozen=True)
class TransportConfigSignature:
    """Pooling identity of a transport configuration.

    Two configurations with equal signatures share channel factories.
    """

    kind: TransportKind
    max_received_message_size: int
    open_timeout: float
    close_timeout: float
    send_timeout: float
    receive_timeout: float
    scheme: str


class TransportConfig(BaseModel):
    """Transport configuration for remote calls."""

    model_config = ConfigDict(frozen=True)

    kind: TransportKind = Field(default=TransportKind.BASIC_HTTP, description="SOAP binding")
    max_received_message_size: int = Field(
        default=65536, gt=0, description="Largest accepted response body in bytes"
    )
    open_timeout: float = Field(default=60.0, gt=0, description="Connect timeout in seconds")
    close_timeout: float = Field(default=60.0, gt=0, description="Orderly close timeout")
    send_timeout: float = Field(default=60.0, gt=0, description="Write timeout in seconds")
    receive_timeout: float = Field(default=600.0, gt=0, description="Read timeout in seconds")

    def signature_for(self, endpoint_url: str) -> TransportConfigSignature:
        """Derive the cache signature for calls to ``endpoint_url``."""
        return TransportConfigSignature(
            kind=self.kind,
            max_received_message_size=self.max_received_message_size,
            open_timeout=self.open_timeout,
            close_timeout=self.close_timeout,
            send_timeout=self.send_timeout,
            receive_timeout=self.receive_timeout,
            scheme=urlsplit(endpoint_url).scheme.lower(),
        )


class BindingConfig(BaseModel):
    """Argument binding configuration."""

    strict: bool = Field(default=False, description="Reject lossy conversions such as '1' -> 1")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: str = Field(default="json", description="Log format (json|console)")
    enable_tracing: bool = Field(default=True, description="Emit OpenTelemetry spans")


class ApiConfig(BaseModel):
    """HTTP ingress configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, description="Bind port")
    prefix: str = Field(default="/api", description="Route prefix for bridged services")

    @field_validator("prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        return "/" + v.strip("/") if v.strip("/") else ""


class ServiceConfig(BaseModel):
    """Bridge service identity."""

    name: str = Field(default="soapbridge", description="Service name")
    version: str = Field(default="0.1.0", description="Service version")


class BridgeConfig(BaseSettings):
    """Main bridge configuration class."""

    model_config = SettingsConfigDict(
        env_prefix="SOAPBRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    endpoints: dict[str, str] = Field(default_factory=dict)
    wsdl_locations: dict[str, str] = Field(default_factory=dict)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    binding: BindingConfig = Field(default_factory=BindingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("endpoints")
    @classmethod
    def validate_endpoints(cls, v: dict[str, str]) -> dict[str, str]:
        seen: set[str] = set()
        for name, url in v.items():
            if name.lower() in seen:
                raise ValueError(f"Endpoint for '{name}' is configured more than once")
            seen.add(name.lower())
            if urlsplit(url).scheme.lower() not in ("http", "https"):
                raise ValueError(f"Endpoint for '{name}' must be an http(s) URL: {url}")
        return v

    def endpoint_for(self, service_name: str) -> str:
        """Return the endpoint URL configured for ``service_name``.

        Raises:
            ConfigurationError: If no endpoint is configured for the service.
        """
        wanted = service_name.lower()
        for name, url in self.endpoints.items():
            if name.lower() == wanted and url:
                return url
        raise ConfigurationError(
            f"Endpoint for '{service_name}' not configured",
            details={"service": service_name},
        )

    @classmethod
    def from_yaml(cls, file_path: str | Path) -> "BridgeConfig":
        """Load configuration from YAML file."""
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {file_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Load configuration from environment variables."""
        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Environment configuration validation failed: {e}")

    def to_yaml(self, file_path: str | Path) -> None:
        """Save configuration to YAML file."""
        with open(file_path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, indent=2)


def load_config(yaml_file: str | Path | None = None, **overrides: Any) -> BridgeConfig:
    """
    Load configuration.

    Priority order:
    1. YAML file (if provided and present)
    2. Environment variables
    3. Defaults

    Keyword overrides replace top-level sections after loading.
    """
    if yaml_file and Path(yaml_file).exists():
        config = BridgeConfig.from_yaml(yaml_file)
    elif yaml_file:
        raise ConfigurationError(f"Configuration file not found: {yaml_file}")
    else:
        config = BridgeConfig.from_env()

    if overrides:
        try:
            config = BridgeConfig(**{**config.model_dump(), **overrides})
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")
    return config


__all__ = [
    "ApiConfig",
    "BindingConfig",
    "BridgeConfig",
    "LogLevel",
    "ObservabilityConfig",
    "ServiceConfig",
    "TransportConfig",
    "TransportConfigSignature",
    "TransportKind",
    "load_config",
]
