"""Repository interface (port) for the application layer.

IRepository is the full data-access capability set. BaseRepository
implements it over SQLAlchemy; CachedRepository implements it by wrapping
another IRepository, so callers cannot tell the two apart.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from repocache.application.dtos.pagination import Page

# Column names to load; ("*",) loads the whole entity.
Columns = Sequence[str]
# Relationship names (dotted paths for nested relations) to eager load.
Relations = Sequence[str]
# {column: value}, or a sequence of (column, operator, value) / (column, value) / mappings.
Conditions = Mapping[str, Any] | Sequence[Any]
# {column: "asc" | "desc"}
Sorts = Mapping[str, str]


class IRepository[ModelType](Protocol):
    """Protocol for a data repository (DIP)."""

    # Reads

    async def all(
        self,
        columns: Columns = ("*",),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        """Return all records matching conditions, sorted."""
        ...

    async def paginate(
        self,
        per_page: int = 10,
        columns: Columns = ("*",),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
        page: int = 1,
    ) -> Page[ModelType]:
        """Return one page of records."""
        ...

    async def first(
        self, columns: Columns = ("*",), relations: Relations = ()
    ) -> ModelType | None:
        """Return the first record or None."""
        ...

    async def first_or_fail(
        self, columns: Columns = ("*",), relations: Relations = ()
    ) -> ModelType:
        """Return the first record; raise ResourceNotFoundException if none."""
        ...

    async def find(
        self, id: Any, columns: Columns = ("*",), relations: Relations = ()
    ) -> ModelType | None:
        """Return the record with primary key id, or None."""
        ...

    async def find_by(
        self,
        conditions: Conditions,
        columns: Columns = ("*",),
        relations: Relations = (),
    ) -> ModelType | None:
        """Return the first record matching conditions, or None."""
        ...

    async def exists(self, conditions: Conditions) -> bool:
        """Return True if any record matches conditions."""
        ...

    async def count(self, conditions: Conditions | None = None) -> int:
        """Return number of records matching conditions."""
        ...

    async def filter(
        self,
        filters: Mapping[str, Any],
        columns: Columns = ("*",),
        relations: Relations = (),
    ) -> list[ModelType]:
        """Return records whose columns equal the filter values."""
        ...

    async def all_transformed(
        self, columns: Columns = ("*",), relations: Relations = ()
    ) -> list[dict[str, Any]]:
        """Return all records converted with transform()."""
        ...

    async def pluck(
        self, column: str, key: str | None = None, cache: bool = True
    ) -> list[Any] | dict[Any, Any]:
        """Return values of column (dict keyed by key column when given).

        cache=False asks a caching implementation to skip the cache.
        """
        ...

    async def all_with_trashed(
        self,
        columns: Columns = ("*",),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        """Like all(), including soft-deleted records."""
        ...

    async def only_trashed(
        self,
        columns: Columns = ("*",),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        """Like all(), only soft-deleted records."""
        ...

    # Writes

    async def create(self, data: Mapping[str, Any]) -> ModelType:
        """Persist a new record."""
        ...

    async def update(self, record: ModelType, data: Mapping[str, Any]) -> bool:
        """Apply data to record; True on success or when nothing changed."""
        ...

    async def update_by(
        self, conditions: Conditions, data: Mapping[str, Any]
    ) -> int:
        """Update matching records; return number updated."""
        ...

    async def delete(self, record: ModelType) -> bool:
        """Delete (soft when supported) a record."""
        ...

    async def delete_by(self, conditions: Conditions) -> int:
        """Delete (soft when supported) matching records; return number deleted."""
        ...

    async def force_delete(self, record: ModelType) -> bool:
        """Permanently delete a record."""
        ...

    async def force_delete_by(self, conditions: Conditions) -> int:
        """Permanently delete matching records, including soft-deleted ones."""
        ...

    async def restore(self, record: ModelType) -> bool:
        """Restore a soft-deleted record."""
        ...

    async def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelType:
        """Return the record matching attributes, creating it if missing."""
        ...

    async def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelType:
        """Update the record matching attributes with values, or create it."""
        ...

    async def upsert(
        self,
        values: Sequence[Mapping[str, Any]],
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int:
        """Insert or update many rows; return affected row count."""
        ...

    async def sync(
        self,
        record: ModelType,
        relation: str,
        ids: Sequence[Any],
        detaching: bool = True,
    ) -> dict[str, list[Any]]:
        """Make a many-to-many relation hold exactly ids (or add them)."""
        ...

    async def detach(
        self, record: ModelType, relation: str, ids: Sequence[Any] | None = None
    ) -> int:
        """Remove ids (all when None) from a many-to-many relation."""
        ...

    # Helpers on already-loaded records

    async def load_relations(
        self, record: ModelType, relations: Relations
    ) -> ModelType:
        """Load relations onto record."""
        ...

    def transform(self, record: ModelType) -> dict[str, Any]:
        """Return the plain representation of record."""
        ...

    def is_unchanged(self, record: ModelType, data: Mapping[str, Any]) -> bool:
        """Return True if applying data would not change record."""
        ...
