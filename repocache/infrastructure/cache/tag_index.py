"""Emulated tag groups for stores used without native tag support.

Each tag owns a set (stored under keys.tag_index_key) listing every full
key written under it; the set expires with its longest-lived entry.
Flushing evicts the listed keys one by one and then drops the set. The
flush is not atomic as a whole, so a concurrent reader may observe a
partially flushed tag.
"""

from __future__ import annotations

import logging

from repocache.infrastructure.cache.keys import tag_index_key
from repocache.infrastructure.cache.stores.protocol import CacheStore

logger = logging.getLogger(__name__)


class TagIndex:
    """Tag -> key set bookkeeping on top of a plain CacheStore."""

    def __init__(self, store: CacheStore) -> None:
        self.store = store

    async def record(self, tag: str, key: str, ttl: int | None = None) -> None:
        """Add key to the index of tag. Idempotent.

        With ttl, the index is kept at least as long as the entry it lists.
        """
        await self.store.add_to_set(tag_index_key(tag), key, ttl)

    async def keys(self, tag: str) -> set[str]:
        """Return every key recorded under tag."""
        return await self.store.set_members(tag_index_key(tag))

    async def flush(self, tag: str) -> int:
        """Evict every key recorded under tag, then clear the index.

        Returns:
            Number of entries that were present and removed.
        """
        removed = 0
        for key in await self.keys(tag):
            if await self.store.forget(key):
                removed += 1
        await self.store.forget(tag_index_key(tag))
        return removed
