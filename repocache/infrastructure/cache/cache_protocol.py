"""Cache protocol for the repository layer (DIP).

The contract CachedRepository depends on; CacheService is the
implementation.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class CacheProtocol(Protocol):
    """Get-or-compute cache with tag flushing. Used by cached repositories."""

    @property
    def default_ttl(self) -> int:
        """Process-wide TTL in seconds, used when a decorator has no override."""
        ...

    @property
    def supports_tags(self) -> bool:
        """True if the backend groups entries by tag natively."""
        ...

    async def remember(
        self, key: str, ttl: int | None, callback: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for key or compute, store and return it."""
        ...

    async def forget(self, key: str) -> bool:
        """Remove a single entry."""
        ...

    async def flush_by_tag(self, tag: str) -> int:
        """Remove every entry written under tag."""
        ...

    def generate_key(self, identifier: str, args: Any) -> str:
        """Key for identifier and arguments, namespaced with the key prefix."""
        ...
