"""Repositories: SQLAlchemy base repository, caching decorator, factory."""

from repocache.infrastructure.persistence.repositories.base import BaseRepository
from repocache.infrastructure.persistence.repositories.cached import CachedRepository
from repocache.infrastructure.persistence.repositories.factory import (
    RepositoryFactory,
)

__all__ = ["BaseRepository", "CachedRepository", "RepositoryFactory"]
