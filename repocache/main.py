"""FastAPI application factory.

Wiring only: lifespan and exception handlers. Applications using repocache
add their own routers and build repositories through api.dependencies.

Settings are loaded inside create_app() so that tests can set env (and
clear the get_settings cache) before calling it.
"""

from fastapi import FastAPI

from repocache.core.config import get_settings
from repocache.core.exception_handlers import register_exception_handlers
from repocache.core.lifespan import create_lifespan


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    register_exception_handlers(app)
    return app
