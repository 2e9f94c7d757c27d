"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the room booking service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    rooms_file: str = Field(
        default="rooms.json",
        description="Path of the JSON document holding every room and its booking state.",
    )
    log_dir: str = Field(default="logs", description="Directory for the HTTP audit logs")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="60/minute", description="Global rate limiting rule")
    booking_rate_limit: str = Field(default="20/minute", description="Limit applied to book, extend and release")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")

    rooms_service_port: int = 5000


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
