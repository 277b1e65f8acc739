"""Infrastructure exceptions for cache backend operations.

Cache errors extend RepoCacheException so callers can map them the same
way as repository errors. They are raised, never swallowed: a cache outage
reaches the caller instead of silently degrading to uncached reads.
"""

from repocache.domain.exceptions import RepoCacheException


class CacheException(RepoCacheException):
    """Base exception for cache operations."""


class CacheUnavailableException(CacheException):
    """Cache backend cannot be reached (connection refused, timeout)."""

    def __init__(self, driver: str, reason: str) -> None:
        super().__init__(
            f"Cache backend '{driver}' is unavailable",
            "CACHE_UNAVAILABLE",
            {"driver": driver, "reason": reason},
        )


class CacheOperationException(CacheException):
    """Cache backend rejected an operation."""

    def __init__(self, operation: str, key: str, reason: str) -> None:
        super().__init__(
            f"Cache {operation} failed for key: {key}",
            "CACHE_OPERATION_ERROR",
            {"operation": operation, "key": key, "reason": reason},
        )


class CacheConfigurationException(CacheException):
    """Cache settings are inconsistent (unknown driver, tag support mismatch)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CACHE_CONFIGURATION_ERROR")
