"""Core constants: cache key structure and shared literal values.

Single source of truth for cache key layout (DRY). Used by the key
deriver, the cache service, the tag index and the stores.
"""

# Delimiter between a tag and the rest of a cache key ("{tag}:{operation}_{hash}")
CACHE_KEY_SEP = ":"

# Suffix of the key holding the emulated tag index ("{tag}_cache_keys")
CACHE_TAG_INDEX_SUFFIX = "_cache_keys"

# Key layout of native tag sets ("tag:{tag}:entries")
CACHE_TAG_SET_PREFIX = "tag"
CACHE_TAG_SET_SUFFIX = "entries"

# Default TTL in seconds when neither settings nor decorator override it
DEFAULT_CACHE_TTL = 3600

# Column wildcard meaning "select the whole entity"
ALL_COLUMNS = "*"

# Length of CUID2 primary keys generated for CuidMixin models
CUID_LENGTH = 24
