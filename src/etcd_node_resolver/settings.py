"""Resolver configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

from .types import ResolverConfig


class ResolverSettings(BaseSettings):
    """Resolver settings loaded from environment variables."""

    # Discovery
    ETCD_TOKEN: str = ""
    ETCD_DISCOVERY_URL: str = "https://discovery.etcd.io"
    DISCOVERY_DIAGNOSTIC_URL: Optional[str] = None

    # Membership cache and refresh
    NODE_CACHE_TTL_SECONDS: float = 600.0
    NODE_REFRESH_MAX_RETRIES: int = 5
    NODE_REFRESH_RETRY_DELAY_SECONDS: float = 0.0
    NODE_RESOLVE_TIMEOUT_SECONDS: float = 60.0

    # Probing
    NODE_PROBE_PATH: str = "/fleet/v1/discovery"
    NODE_PROBE_TIMEOUT_SECONDS: float = 5.0

    # Fleet API
    FIX_PORT_NUMBER: bool = False
    FLEET_API_PORT: Optional[int] = None
    FLEET_API_PROXY: Optional[str] = None

    class Config:
        case_sensitive = True
        env_file = None  # Use system env only

    @property
    def api_port(self) -> Optional[int]:
        """Port to force onto node URLs, or None when the fix is disabled"""
        if self.FIX_PORT_NUMBER:
            return self.FLEET_API_PORT
        return None

    def to_resolver_config(self) -> ResolverConfig:
        return ResolverConfig(
            cache_ttl_seconds=self.NODE_CACHE_TTL_SECONDS,
            max_retries=self.NODE_REFRESH_MAX_RETRIES,
            retry_delay_seconds=self.NODE_REFRESH_RETRY_DELAY_SECONDS,
            call_timeout_seconds=self.NODE_RESOLVE_TIMEOUT_SECONDS,
            api_port=self.api_port,
        )


@lru_cache()
def get_settings() -> ResolverSettings:
    """Get cached settings instance."""
    return ResolverSettings()
