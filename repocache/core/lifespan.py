"""Application lifespan: startup and shutdown.

Single place for startup/shutdown wiring: logging, the process-wide cache
service, and SQL engine dispose. No business logic here.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from repocache.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: logging, cache store + CacheService (connected, stored on
    app.state.cache). Shutdown: cache disconnect, SQL engine dispose.
    A cache backend that cannot be reached fails startup.
    """
    settings = get_settings()

    # ---- Startup ----
    from repocache.shared.telemetry.logging import setup_logging

    setup_logging(settings)

    from repocache.infrastructure.cache.cache_service import CacheService
    from repocache.infrastructure.cache.stores.factory import CacheStoreFactory

    store = CacheStoreFactory.create_cache_store(settings)
    cache = CacheService(store, settings)
    await cache.connect()
    app.state.cache = cache
    logger.info(
        "Cache connected (driver=%s, native tags=%s)", cache.driver, cache.supports_tags
    )

    yield

    # ---- Shutdown ----
    if getattr(app.state, "cache", None) is not None:
        await app.state.cache.disconnect()
        app.state.cache = None
        logger.info("Cache disconnected")

    from repocache.infrastructure.persistence.database import dispose_engine

    await dispose_engine()
