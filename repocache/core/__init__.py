"""Core: config, constants, and application lifespan.

Single place for settings and shared constants.
"""

from repocache.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
