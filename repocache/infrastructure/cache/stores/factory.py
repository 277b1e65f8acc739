"""Cache store factory: creates the redis or memory store from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from repocache.infrastructure.cache.stores.protocol import CacheStore
from repocache.infrastructure.exceptions import CacheConfigurationException

if TYPE_CHECKING:
    from repocache.core.config import Settings


class CacheStoreFactory:
    """Factory for cache store instances based on configuration."""

    @staticmethod
    def create_cache_store(settings: "Settings | None" = None) -> CacheStore:
        """Create cache store from settings.

        Args:
            settings: Application settings; if None, uses get_settings().

        Returns:
            RedisStore or MemoryStore (not yet connected).

        Raises:
            CacheConfigurationException: Unknown driver.
        """
        from repocache.core.config import get_settings

        s = settings or get_settings()
        driver = s.cache_driver.lower()

        if driver == "redis":
            from repocache.infrastructure.cache.stores.redis_store import RedisStore

            return RedisStore.from_settings(s)
        if driver == "memory":
            from repocache.infrastructure.cache.stores.memory_store import MemoryStore

            return MemoryStore()
        raise CacheConfigurationException(
            f"Unknown cache driver: {driver}. Supported: 'redis', 'memory'"
        )
