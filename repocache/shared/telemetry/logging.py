"""Logging configuration: root handler plus the cache logger level."""

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repocache.core.config import Settings

# Parent of every cache module logger (service, stores, tag index, decorators)
CACHE_LOGGER = "repocache.infrastructure.cache"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: "Settings | None" = None) -> None:
    """Configure application-wide logging.

    Root level is DEBUG when settings.debug is True, otherwise INFO, with
    output on stdout. settings.cache_log_level, when set, overrides the level
    of the cache loggers only, so HIT/MISS lines can be muted in a debug run
    or shown in a quiet one.

    Args:
        settings: Application settings; if None, uses get_settings().
    """
    from repocache.core.config import get_settings

    s = settings or get_settings()
    logging.basicConfig(
        level=logging.DEBUG if s.debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    cache_logger = logging.getLogger(CACHE_LOGGER)
    if s.cache_log_level is not None:
        cache_logger.setLevel(s.cache_log_level)
    else:
        cache_logger.setLevel(logging.NOTSET)
