"""FastAPI dependency providers (composition root).

The cache service is built once in the lifespan (app.state.cache); routes
receive it, DB sessions and repositories only through these dependencies.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from repocache.infrastructure.cache.cache_service import CacheService
from repocache.infrastructure.persistence.database import (
    get_db,
    get_db_transactional,
)
from repocache.infrastructure.exceptions import CacheUnavailableException

__all__ = ["CacheDep", "get_cache_service", "get_db", "get_db_transactional"]


async def get_cache_service(request: Request) -> CacheService:
    """Return the process-wide CacheService set by the lifespan.

    Raises:
        CacheUnavailableException: If the app was started without the lifespan
            or is shutting down.
    """
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise CacheUnavailableException("none", "cache service is not initialized")
    return cache


CacheDep = Annotated[CacheService, Depends(get_cache_service)]
