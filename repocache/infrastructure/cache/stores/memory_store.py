"""In-process cache store with TTL expiry and tag sets.

Used for development and tests. Entries expire lazily on read. A set given
a ttl lives at least that long and its expiry is only ever extended, so a
tag set outlives every entry registered in it. Supports native tag groups,
so it can stand in for Redis on either code path of CacheService depending
on cache_supported_tag_drivers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from repocache.infrastructure.cache.keys import tag_set_key
from repocache.infrastructure.cache.stores.serialization import deserialize, serialize

logger = logging.getLogger(__name__)


class MemoryStore:
    """Dictionary-backed store. Not shared between processes."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty store.

        Args:
            clock: Monotonic time source in seconds (injectable for tests).
        """
        self._clock = clock
        self._entries: dict[str, tuple[bytes, float]] = {}
        self._sets: dict[str, set[str]] = {}
        self._set_expiry: dict[str, float] = {}

    async def connect(self) -> None:
        logger.debug("Memory cache store ready")

    async def close(self) -> None:
        self._entries.clear()
        self._sets.clear()
        self._set_expiry.clear()

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return deserialize(payload)

    async def put(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (serialize(value), self._clock() + ttl)

    async def forget(self, key: str) -> bool:
        removed_entry = self._entries.pop(key, None) is not None
        removed_set = self._live_set(key) is not None
        self._sets.pop(key, None)
        self._set_expiry.pop(key, None)
        return removed_entry or removed_set

    async def add_to_set(self, key: str, member: str, ttl: int | None = None) -> None:
        members = self._live_set(key)
        if members is None:
            members = self._sets[key] = set()
        members.add(member)
        if ttl is not None:
            expires_at = self._clock() + ttl
            self._set_expiry[key] = max(self._set_expiry.get(key, expires_at), expires_at)

    async def set_members(self, key: str) -> set[str]:
        return set(self._live_set(key) or ())

    async def put_tagged(
        self, tags: list[str], key: str, value: Any, ttl: int
    ) -> None:
        await self.put(key, value, ttl)
        for tag in tags:
            await self.add_to_set(tag_set_key(tag), key, ttl)

    async def flush_tags(self, tags: list[str]) -> int:
        removed = 0
        for tag in tags:
            set_key = tag_set_key(tag)
            members = self._live_set(set_key) or set()
            self._sets.pop(set_key, None)
            self._set_expiry.pop(set_key, None)
            for key in members:
                if self._entries.pop(key, None) is not None:
                    removed += 1
        return removed

    def _live_set(self, key: str) -> set[str] | None:
        """Return the set stored at key, dropping it first if it has expired."""
        expires_at = self._set_expiry.get(key)
        if expires_at is not None and expires_at <= self._clock():
            self._sets.pop(key, None)
            del self._set_expiry[key]
        return self._sets.get(key)
