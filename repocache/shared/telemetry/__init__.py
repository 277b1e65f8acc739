"""Shared telemetry: logging setup."""

from repocache.shared.telemetry.logging import CACHE_LOGGER, setup_logging

__all__ = ["CACHE_LOGGER", "setup_logging"]
