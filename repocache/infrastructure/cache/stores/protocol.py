"""Store protocols: the key-value backend consumed by CacheService (DIP)."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Key-value backend with TTL entries and set primitives.

    get() returns None for a missing or expired key. The set primitives
    back the emulated tag index on stores used without native tags.
    """

    name: str

    async def connect(self) -> None:
        """Open the backend connection (no-op for in-process stores)."""
        ...

    async def close(self) -> None:
        """Release the backend connection."""
        ...

    async def get(self, key: str) -> Any | None:
        """Return the stored value or None."""
        ...

    async def put(self, key: str, value: Any, ttl: int) -> None:
        """Store value under key for ttl seconds."""
        ...

    async def forget(self, key: str) -> bool:
        """Remove key; return True if it existed."""
        ...

    async def add_to_set(self, key: str, member: str, ttl: int | None = None) -> None:
        """Add member to the set stored at key.

        With ttl, the set is kept for at least ttl more seconds; an existing
        longer expiry is never shortened. Without ttl the expiry is unchanged.
        """
        ...

    async def set_members(self, key: str) -> set[str]:
        """Return members of the set stored at key (empty if absent)."""
        ...


@runtime_checkable
class TaggableCacheStore(CacheStore, Protocol):
    """Store that groups entries by tag natively."""

    async def put_tagged(
        self, tags: list[str], key: str, value: Any, ttl: int
    ) -> None:
        """Store value and register key under every tag in one step."""
        ...

    async def flush_tags(self, tags: list[str]) -> int:
        """Remove every entry registered under tags; return number removed."""
        ...
