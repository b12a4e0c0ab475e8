"""
Shared configuration management for the Edge Frontend.
"""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias="FRONTEND_ENV")
    log_level: str = Field(default="info", validation_alias="FRONTEND_LOG_LEVEL")

    # Listener
    host: str = Field(default="0.0.0.0", validation_alias="FRONTEND_HOST")
    port: int = Field(default=8080, validation_alias="PORT")

    # Static content
    static_dir: str = Field(default="static", validation_alias="FRONTEND_STATIC_DIR")

    # Asset cache (30 days, 100 entries)
    cache_ttl_seconds: float = Field(default=30 * 24 * 60 * 60, validation_alias="FRONTEND_CACHE_TTL_SECONDS")
    cache_max_entries: int = Field(default=100, validation_alias="FRONTEND_CACHE_MAX_ENTRIES")

    # Upstream fetches
    upstream_timeout_seconds: float = Field(default=30.0, validation_alias="FRONTEND_UPSTREAM_TIMEOUT_SECONDS")

    # Access gating
    challenge: bool = Field(default=False, validation_alias="FRONTEND_CHALLENGE")
    users: Dict[str, str] = Field(default_factory=dict, validation_alias="FRONTEND_USERS")
    access_keys: List[str] = Field(default_factory=lambda: ["validitiy"], validation_alias="FRONTEND_ACCESS_KEYS")
    permissions_policy: str = Field(
        default="geolocation=(self), microphone=()",
        validation_alias="FRONTEND_PERMISSIONS_POLICY",
    )

    # Tunneling sub-server
    tunnel_prefix: str = Field(default="/fq/", validation_alias="FRONTEND_TUNNEL_PREFIX")
    tunnel_app: Optional[str] = Field(default=None, validation_alias="FRONTEND_TUNNEL_APP")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
