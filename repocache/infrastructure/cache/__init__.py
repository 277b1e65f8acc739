"""Cache: cache service, stores, key derivation and repository decorators.

CacheService is built once per process (see repocache.core.lifespan) and
injected into cached repositories; key format lives in keys.py (DRY).
"""

from repocache.infrastructure.cache.cache_protocol import CacheProtocol
from repocache.infrastructure.cache.cache_service import CacheService
from repocache.infrastructure.cache.decorators import (
    cached_read,
    invalidates_cache,
    mutation_applied,
)
from repocache.infrastructure.cache.keys import (
    canonicalize,
    derive_key,
    extract_tag,
    hash_arguments,
)
from repocache.infrastructure.cache.tag_index import TagIndex

__all__ = [
    "CacheProtocol",
    "CacheService",
    "TagIndex",
    "cached_read",
    "canonicalize",
    "derive_key",
    "extract_tag",
    "hash_arguments",
    "invalidates_cache",
    "mutation_applied",
]
