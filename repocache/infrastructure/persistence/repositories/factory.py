"""Repository factory: wraps repositories in the caching decorator when enabled."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repocache.application.interfaces.repositories import IRepository
from repocache.infrastructure.cache.cache_protocol import CacheProtocol
from repocache.infrastructure.persistence.repositories.cached import (
    CachedRepository,
    check_ttl,
)

if TYPE_CHECKING:
    from repocache.core.config import Settings

logger = logging.getLogger(__name__)


class RepositoryFactory:
    """Factory deciding whether callers get a cached or a plain repository."""

    @staticmethod
    def create[ModelType](
        repository: IRepository[ModelType],
        cache: CacheProtocol | None,
        *,
        ttl: int | None = None,
        use_cached: bool | None = None,
        settings: "Settings | None" = None,
    ) -> IRepository[ModelType]:
        """Return repository, wrapped in CachedRepository when caching is on.

        Args:
            repository: Concrete repository (e.g. a BaseRepository subclass).
            cache: Cache service; None always yields the plain repository.
            ttl: TTL override in seconds for this repository's reads.
            use_cached: Force caching on or off; None reads
                settings.repository_use_cached.
            settings: Application settings; if None, uses get_settings().

        Returns:
            CachedRepository or the repository itself.

        Raises:
            CacheConfigurationException: If ttl is zero or negative, even when
                caching ends up disabled.
        """
        check_ttl(ttl)
        if use_cached is None:
            from repocache.core.config import get_settings

            use_cached = (settings or get_settings()).repository_use_cached
        if not use_cached or cache is None:
            logger.debug("Using uncached %s", type(repository).__name__)
            return repository
        return CachedRepository(repository, cache, ttl=ttl)
