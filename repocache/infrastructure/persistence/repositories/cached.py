"""Caching decorator for repositories.

CachedRepository wraps any IRepository and exposes the same interface.
Reads go through CacheService.remember under keys derived from the method
name and its bound arguments; writes delegate and then flush every entry
of this repository's tag, so a read after a write never sees stale data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from repocache.application.dtos.pagination import Page
from repocache.application.interfaces.repositories import (
    Columns,
    Conditions,
    IRepository,
    Relations,
    Sorts,
)
from repocache.core.constants import ALL_COLUMNS
from repocache.infrastructure.cache.cache_protocol import CacheProtocol
from repocache.infrastructure.cache.decorators import (
    cached_read,
    invalidates_cache,
    mutation_applied,
)
from repocache.infrastructure.cache.keys import derive_key
from repocache.infrastructure.exceptions import CacheConfigurationException

logger = logging.getLogger(__name__)


def check_ttl(ttl: int | None) -> None:
    """Raise CacheConfigurationException unless ttl is None or positive."""
    if ttl is not None and ttl <= 0:
        raise CacheConfigurationException(
            f"Repository cache TTL must be a positive number of seconds, got {ttl}"
        )


class CachedRepository[ModelType]:
    """Read-through cache in front of a repository.

    The tag is the wrapped repository's class name, so one flush evicts every
    cached read of that repository. TTL defaults to the cache's default TTL.
    """

    def __init__(
        self,
        repository: IRepository[ModelType],
        cache: CacheProtocol,
        ttl: int | None = None,
    ) -> None:
        check_ttl(ttl)
        self._repository = repository
        self._cache = cache
        self._ttl = ttl if ttl is not None else cache.default_ttl
        self._tag = type(repository).__name__

    @property
    def repository(self) -> IRepository[ModelType]:
        return self._repository

    @property
    def cache(self) -> CacheProtocol:
        return self._cache

    @property
    def ttl(self) -> int:
        return self._ttl

    @property
    def tag(self) -> str:
        return self._tag

    def cache_key(self, operation: str, arguments: Mapping[str, Any]) -> str:
        """Key for a read of this repository: ``{tag}:{operation}_{hash}``."""
        return derive_key(self._tag, operation, arguments)

    async def clear_cache(self) -> int:
        """Evict every cached read of this repository."""
        return await self._cache.flush_by_tag(self._tag)

    # Reads

    @cached_read()
    async def all(
        self,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        return await self._repository.all(columns, relations, conditions, sorts)

    @cached_read()
    async def paginate(
        self,
        per_page: int = 10,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
        page: int = 1,
    ) -> Page[ModelType]:
        return await self._repository.paginate(
            per_page, columns, relations, conditions, sorts, page
        )

    @cached_read()
    async def first(
        self, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> ModelType | None:
        return await self._repository.first(columns, relations)

    @cached_read()
    async def first_or_fail(
        self, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> ModelType:
        """Cached first record; a not-found error propagates and is not cached."""
        return await self._repository.first_or_fail(columns, relations)

    @cached_read()
    async def find(
        self, id: Any, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> ModelType | None:
        return await self._repository.find(id, columns, relations)

    @cached_read()
    async def find_by(
        self,
        conditions: Conditions,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
    ) -> ModelType | None:
        return await self._repository.find_by(conditions, columns, relations)

    @cached_read()
    async def exists(self, conditions: Conditions) -> bool:
        return await self._repository.exists(conditions)

    @cached_read()
    async def count(self, conditions: Conditions | None = None) -> int:
        return await self._repository.count(conditions)

    @cached_read()
    async def filter(
        self,
        filters: Mapping[str, Any],
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
    ) -> list[ModelType]:
        return await self._repository.filter(filters, columns, relations)

    @cached_read()
    async def all_transformed(
        self, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> list[dict[str, Any]]:
        return await self._repository.all_transformed(columns, relations)

    @cached_read(bypass="cache")
    async def pluck(
        self, column: str, key: str | None = None, cache: bool = True
    ) -> list[Any] | dict[Any, Any]:
        """Cached column values; cache=False reads straight from the repository."""
        return await self._repository.pluck(column, key, cache)

    @cached_read()
    async def all_with_trashed(
        self,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        return await self._repository.all_with_trashed(
            columns, relations, conditions, sorts
        )

    @cached_read()
    async def only_trashed(
        self,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        return await self._repository.only_trashed(
            columns, relations, conditions, sorts
        )

    # Writes

    @invalidates_cache
    async def create(self, data: Mapping[str, Any]) -> ModelType:
        return await self._repository.create(data)

    async def update(self, record: ModelType, data: Mapping[str, Any]) -> bool:
        """Update record; an update that changes nothing keeps the cache."""
        if self._repository.is_unchanged(record, data):
            logger.debug("No-op update on %s; cache kept", self._tag)
            return True
        result = await self._repository.update(record, data)
        if mutation_applied(result):
            await self.clear_cache()
        return result

    @invalidates_cache
    async def update_by(self, conditions: Conditions, data: Mapping[str, Any]) -> int:
        return await self._repository.update_by(conditions, data)

    @invalidates_cache
    async def delete(self, record: ModelType) -> bool:
        return await self._repository.delete(record)

    @invalidates_cache
    async def delete_by(self, conditions: Conditions) -> int:
        return await self._repository.delete_by(conditions)

    @invalidates_cache
    async def force_delete(self, record: ModelType) -> bool:
        return await self._repository.force_delete(record)

    @invalidates_cache
    async def force_delete_by(self, conditions: Conditions) -> int:
        return await self._repository.force_delete_by(conditions)

    @invalidates_cache
    async def restore(self, record: ModelType) -> bool:
        return await self._repository.restore(record)

    @invalidates_cache
    async def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelType:
        return await self._repository.first_or_create(attributes, values)

    @invalidates_cache
    async def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelType:
        return await self._repository.update_or_create(attributes, values)

    @invalidates_cache
    async def upsert(
        self,
        values: Sequence[Mapping[str, Any]],
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int:
        return await self._repository.upsert(values, unique_by, update)

    @invalidates_cache
    async def sync(
        self,
        record: ModelType,
        relation: str,
        ids: Sequence[Any],
        detaching: bool = True,
    ) -> dict[str, list[Any]]:
        return await self._repository.sync(record, relation, ids, detaching)

    @invalidates_cache
    async def detach(
        self, record: ModelType, relation: str, ids: Sequence[Any] | None = None
    ) -> int:
        return await self._repository.detach(record, relation, ids)

    # Passthrough

    async def load_relations(self, record: ModelType, relations: Relations) -> ModelType:
        return await self._repository.load_relations(record, relations)

    def transform(self, record: ModelType) -> dict[str, Any]:
        return self._repository.transform(record)

    def is_unchanged(self, record: ModelType, data: Mapping[str, Any]) -> bool:
        return self._repository.is_unchanged(record, data)
