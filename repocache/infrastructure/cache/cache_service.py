"""Cache service: get-or-compute with TTL and tag invalidation.

Sits between cached repositories and a CacheStore. Keys handed in are
relative (``{tag}:{operation}_{hash}``); the service namespaces them with
the configured key prefix and derives the entry's tag from the part before
the first separator.

Tag support is decided once at construction: when the store's driver is in
cache_supported_tag_drivers, entries are written with native tag groups;
otherwise every key is recorded in a TagIndex before the entry is written.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from repocache.infrastructure.cache.keys import extract_tag, hash_arguments
from repocache.infrastructure.cache.stores.protocol import (
    CacheStore,
    TaggableCacheStore,
)
from repocache.infrastructure.cache.tag_index import TagIndex
from repocache.infrastructure.exceptions import CacheConfigurationException

if TYPE_CHECKING:
    from repocache.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """Process-wide cache service (one per application, built in the lifespan).

    Backend failures raised by the store propagate unchanged; the service
    never falls back to computing without the cache.
    """

    def __init__(self, store: CacheStore, settings: Settings | None = None) -> None:
        """Initialize cache service.

        Args:
            store: Backend store (RedisStore, MemoryStore, ...).
            settings: Application settings; if None, uses get_settings().

        Raises:
            CacheConfigurationException: If the driver is listed as tag capable
                but the store cannot write tagged entries.
        """
        from repocache.core.config import get_settings

        s = settings or get_settings()
        self.store = store
        self._default_ttl = s.cache_default_ttl
        self._key_prefix = s.cache_prefix
        self._driver = store.name
        self._supports_tags = self._driver in s.cache_supported_tag_drivers
        if self._supports_tags and not isinstance(store, TaggableCacheStore):
            raise CacheConfigurationException(
                f"Cache driver '{self._driver}' is configured as tag capable "
                "but its store does not support tagged entries"
            )
        self._tag_index = TagIndex(store)

    @property
    def default_ttl(self) -> int:
        """Default TTL in seconds."""
        return self._default_ttl

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def supports_tags(self) -> bool:
        """True if entries are grouped by the store's native tags."""
        return self._supports_tags

    async def connect(self) -> None:
        """Connect the store. Call on app startup."""
        await self.store.connect()

    async def disconnect(self) -> None:
        """Close the store. Call on app shutdown."""
        await self.store.close()

    async def remember(
        self, key: str, ttl: int | None, callback: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for key, or await callback and cache its result.

        The computed value is stored before it is returned. A None result is
        returned without being stored, since stores report a missing key as
        None.

        Args:
            key: Relative cache key ({tag}:{operation}_{hash}).
            ttl: Cache duration in seconds; None uses the default TTL.
            callback: Zero-argument coroutine function computing the value.

        Returns:
            The cached or freshly computed value.
        """
        duration = ttl if ttl is not None else self._default_ttl
        full_key = self._full_key(key)
        tag = self._key_prefix + extract_tag(key)

        cached = await self.store.get(full_key)
        if cached is not None:
            logger.debug("Cache HIT: %s", full_key)
            return cached
        logger.debug("Cache MISS: %s", full_key)

        value = await callback()
        if value is None:
            return value
        if self._supports_tags:
            await self.store.put_tagged([tag], full_key, value, duration)
        else:
            # Index first: a failed entry write leaves a dangling index member,
            # which the next flush removes.
            await self._tag_index.record(tag, full_key, duration)
            await self.store.put(full_key, value, duration)
        logger.debug("Cache SET: %s (TTL: %ss)", full_key, duration)
        return value

    async def forget(self, key: str) -> bool:
        """Remove the entry for key. Returns True if it existed."""
        full_key = self._full_key(key)
        removed = await self.store.forget(full_key)
        logger.debug("Cache DELETE: %s", full_key)
        return removed

    async def flush_by_tag(self, tag: str) -> int:
        """Remove every entry written under tag.

        Safe to call when nothing is cached for the tag.

        Returns:
            Number of entries removed.
        """
        prefixed_tag = self._key_prefix + tag
        if self._supports_tags:
            removed = await self.store.flush_tags([prefixed_tag])
        else:
            removed = await self._tag_index.flush(prefixed_tag)
        if removed > 0:
            logger.info("Cache INVALIDATE: tag %s (%s keys)", prefixed_tag, removed)
        return removed

    def generate_key(
        self, identifier: str, args: Mapping[str, Any] | Sequence[Any]
    ) -> str:
        """Generate a namespaced key from an identifier and arguments.

        Args:
            identifier: Unique identifier (e.g. repository + method name).
            args: Arguments to hash, by name or by position.

        Returns:
            ``{prefix}{identifier}_{md5}``.
        """
        if not isinstance(args, Mapping):
            args = {str(i): v for i, v in enumerate(args)}
        return f"{self._key_prefix}{identifier}_{hash_arguments(args)}"

    def _full_key(self, key: str) -> str:
        return self._key_prefix + key
