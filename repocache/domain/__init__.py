"""Domain layer: exceptions shared by repositories and their callers."""

from repocache.domain.exceptions import (
    InvalidArgumentException,
    RepoCacheException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    UnsupportedOperationException,
)

__all__ = [
    "InvalidArgumentException",
    "RepoCacheException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "UnsupportedOperationException",
]
