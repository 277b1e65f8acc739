"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Cache and database options are validated at load time.
"""

import logging
from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repocache.core.constants import DEFAULT_CACHE_TTL


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings have defaults; validate_cache rejects an unknown cache
    driver, a non-positive default TTL or an unknown cache log level.
    """

    # App
    app_name: str = "repocache"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database (SQLAlchemy async URL, e.g. postgresql+asyncpg://... or sqlite+aiosqlite://)
    database_url: str = ""
    database_echo: bool = False
    # Optional pool overrides (None = use defaults in database.py)
    db_pool_size: int | None = None
    db_max_overflow: int | None = None

    # Cache: driver is "redis" or "memory"
    cache_driver: str = "redis"
    cache_default_ttl: int = DEFAULT_CACHE_TTL
    cache_prefix: str = ""
    # Drivers treated as supporting native tag groups; others use the tag index.
    cache_supported_tag_drivers: list[str] = ["redis", "memcached"]
    # Level for cache HIT/MISS/SET lines (e.g. "WARNING" to mute them); None follows debug
    cache_log_level: str | None = None

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_socket_timeout: float = 5.0

    # Repositories: wrap repositories in the caching decorator
    repository_use_cached: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_cache(self) -> "Settings":
        """Validate cache driver, default TTL and cache log level."""
        if self.cache_driver not in ("redis", "memory"):
            raise ValueError(
                f"cache_driver must be 'redis' or 'memory', got: {self.cache_driver!r}"
            )
        if self.cache_default_ttl <= 0:
            raise ValueError(
                f"cache_default_ttl must be a positive number of seconds, got: {self.cache_default_ttl}"
            )
        if self.cache_log_level is not None:
            level = self.cache_log_level.upper()
            if level not in logging.getLevelNamesMapping():
                raise ValueError(
                    f"cache_log_level must be a logging level name, got: {self.cache_log_level!r}"
                )
            self.cache_log_level = level
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (loaded once per process)."""
    return Settings()
