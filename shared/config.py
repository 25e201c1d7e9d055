"""
Shared configuration management for the catalog service.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    app_env: str = "development"
    log_level: Optional[str] = None

    # HTTP listener
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origin: str = "http://localhost:5173"

    # Cache service
    cache_service_url: str = "redis://localhost:6379"
    cache_reconnect_base_delay: float = 0.2
    cache_reconnect_max_delay: float = 3.0
    cache_health_check_interval: float = 5.0
    cache_connect_timeout: float = 5.0
    cache_close_timeout: float = 2.0

    # Lifecycle
    shutdown_timeout: float = 10.0

    @property
    def is_dev(self) -> bool:
        return self.app_env == "development"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "production"

    @property
    def effective_log_level(self) -> str:
        """Explicit LOG_LEVEL wins, otherwise debug in development."""
        if self.log_level:
            return self.log_level.lower()
        return "debug" if self.is_dev else "info"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str

    def __init__(self, service_name: str, **kwargs):
        super().__init__(service_name=service_name, **kwargs)


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
