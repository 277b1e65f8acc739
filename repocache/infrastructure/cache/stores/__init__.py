"""Cache stores: key-value backends behind CacheService."""

from repocache.infrastructure.cache.stores.factory import CacheStoreFactory
from repocache.infrastructure.cache.stores.memory_store import MemoryStore
from repocache.infrastructure.cache.stores.protocol import (
    CacheStore,
    TaggableCacheStore,
)
from repocache.infrastructure.cache.stores.redis_store import RedisStore

__all__ = [
    "CacheStore",
    "CacheStoreFactory",
    "MemoryStore",
    "RedisStore",
    "TaggableCacheStore",
]
