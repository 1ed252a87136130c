"""
Shared configuration management for the Place Search Proxy.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache store
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_backend: str = Field(default="redis")
    cache_namespace: str = Field(default="JUSO_CACHE")

    # Upstream
    kakao_search_url: str = Field(default="https://dapi.kakao.com/v2/local/search/keyword.json")
    upstream_timeout_seconds: float = Field(default=10.0)

    # Secrets
    kakao_api_key_secret: str = Field(default="KAKAO_API_KEY")
    secrets_file: Optional[str] = Field(default=None)
    master_key: Optional[str] = Field(default=None)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)
