"""Base repository: generic SQLAlchemy implementation of IRepository.

Reads accept column subsets, eager-loaded relations, conditions and sorts;
writes flush but never commit (the session dependency owns the transaction).
Models with a deleted_at column (SoftDeleteMixin) are soft deleted: removed
rows are hidden from every read except all_with_trashed and only_trashed.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Literal

from sqlalchemy import Select, delete, func, inspect as sa_inspect, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import RelationshipProperty, load_only, selectinload

from repocache.application.dtos.pagination import Page
from repocache.application.interfaces.repositories import (
    Columns,
    Conditions,
    Relations,
    Sorts,
)
from repocache.core.constants import ALL_COLUMNS
from repocache.domain.exceptions import (
    InvalidArgumentException,
    ResourceNotFoundException,
    UnsupportedOperationException,
)
from repocache.infrastructure.persistence.database import Base
from repocache.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SOFT_DELETE_COLUMN = "deleted_at"

Trashed = Literal["without", "with", "only"]

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "=": lambda col, v: col.is_(None) if v is None else col == v,
    "!=": lambda col, v: col.is_not(None) if v is None else col != v,
    "<>": lambda col, v: col.is_not(None) if v is None else col != v,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda col, v: col.like(v),
    "not like": lambda col, v: col.not_like(v),
    "ilike": lambda col, v: col.ilike(v),
    "in": lambda col, v: col.in_(list(v)),
    "not in": lambda col, v: col.not_in(list(v)),
}

_SORT_DIRECTIONS = ("asc", "desc")


class BaseRepository[ModelType: Base]:
    """Generic repository over an AsyncSession and a declarative model.

    Subclass per model (``class UserRepository(BaseRepository[User])``) so
    each repository has its own class name; CachedRepository uses that name
    as the cache tag.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model
        self._mapper = sa_inspect(model)

    @property
    def soft_deletes(self) -> bool:
        """True if the model carries a deleted_at column."""
        return SOFT_DELETE_COLUMN in self._mapper.column_attrs

    # Reads

    async def all(
        self,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        """Return all records matching conditions, in sort order."""
        stmt = self._select(columns, relations, conditions, sorts)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def paginate(
        self,
        per_page: int = 10,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
        page: int = 1,
    ) -> Page[ModelType]:
        """Return one page of records plus the total count.

        Without sorts, rows are ordered by primary key so pages are stable.
        """
        if per_page < 1:
            raise InvalidArgumentException("per_page must be at least 1", "per_page")
        if page < 1:
            raise InvalidArgumentException("page must be at least 1", "page")
        stmt = self._select(columns, relations, conditions, sorts)
        if not sorts:
            stmt = stmt.order_by(*self._primary_key_columns())
        stmt = stmt.offset((page - 1) * per_page).limit(per_page)
        total = await self.count(conditions)
        result = await self.db.execute(stmt)
        return Page(
            items=list(result.scalars().all()),
            total=total,
            per_page=per_page,
            current_page=page,
        )

    async def first(
        self, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> ModelType | None:
        """Return the first record, or None."""
        result = await self.db.execute(self._select(columns, relations).limit(1))
        return result.scalars().first()

    async def first_or_fail(
        self, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> ModelType:
        """Return the first record; raise ResourceNotFoundException if none."""
        record = await self.first(columns, relations)
        if record is None:
            raise ResourceNotFoundException(self.model.__name__, "first")
        return record

    async def find(
        self, id: Any, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> ModelType | None:
        """Return the record with primary key id, or None."""
        pk_columns = self._primary_key_columns()
        if len(pk_columns) != 1:
            raise UnsupportedOperationException("find", self.model.__name__)
        stmt = self._select(columns, relations).where(pk_columns[0] == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by(
        self,
        conditions: Conditions,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
    ) -> ModelType | None:
        """Return the first record matching conditions, or None."""
        stmt = self._select(columns, relations, conditions).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def exists(self, conditions: Conditions) -> bool:
        """Return True if any record matches conditions."""
        stmt = self._scope_trashed(select(*self._primary_key_columns()), "without")
        stmt = stmt.where(*self._where(conditions))
        return bool(await self.db.scalar(select(stmt.exists())))

    async def count(self, conditions: Conditions | None = None) -> int:
        """Return the number of records matching conditions."""
        stmt = select(func.count()).select_from(self.model)
        stmt = self._scope_trashed(stmt, "without").where(*self._where(conditions))
        return int(await self.db.scalar(stmt) or 0)

    async def filter(
        self,
        filters: Mapping[str, Any],
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
    ) -> list[ModelType]:
        """Return records whose columns equal the filter values."""
        return await self.all(columns, relations, conditions=dict(filters))

    async def all_transformed(
        self, columns: Columns = (ALL_COLUMNS,), relations: Relations = ()
    ) -> list[dict[str, Any]]:
        """Return all records converted with transform()."""
        return [self.transform(record) for record in await self.all(columns, relations)]

    async def pluck(
        self, column: str, key: str | None = None, cache: bool = True
    ) -> list[Any] | dict[Any, Any]:
        """Return the values of column, or a dict of key column -> value.

        cache is accepted for interface compatibility and ignored here.
        """
        value_col = self._column(column)
        if key is None:
            stmt = self._scope_trashed(select(value_col), "without")
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        stmt = self._scope_trashed(select(self._column(key), value_col), "without")
        result = await self.db.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def all_with_trashed(
        self,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        """Like all(), including soft-deleted records."""
        stmt = self._select(columns, relations, conditions, sorts, trashed="with")
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def only_trashed(
        self,
        columns: Columns = (ALL_COLUMNS,),
        relations: Relations = (),
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
    ) -> list[ModelType]:
        """Like all(), returning only soft-deleted records.

        Raises:
            UnsupportedOperationException: If the model has no soft deletes.
        """
        stmt = self._select(columns, relations, conditions, sorts, trashed="only")
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # Writes

    async def create(self, data: Mapping[str, Any]) -> ModelType:
        """Persist a new record built from data."""
        self._check_attributes(data)
        record = self.model(**data)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record

    async def update(self, record: ModelType, data: Mapping[str, Any]) -> bool:
        """Apply data to record and flush.

        Returns True without touching the database when data would not
        change the record.
        """
        self._check_attributes(data)
        if self.is_unchanged(record, data):
            logger.debug("No-op update on %s skipped", self.model.__name__)
            return True
        target = await self._attached(record)
        for name, value in data.items():
            setattr(target, name, value)
        await self.db.flush()
        await self.db.refresh(target)
        self._mirror(target, record, data)
        return True

    async def update_by(self, conditions: Conditions, data: Mapping[str, Any]) -> int:
        """Update records matching conditions; return number of rows updated.

        Bulk statements do not refresh instances already loaded in the session.
        """
        self._check_attributes(data)
        if not data:
            return 0
        stmt = self._scope_trashed(update(self.model), "without")
        stmt = stmt.where(*self._where(conditions)).values(**data)
        result = await self.db.execute(
            stmt.execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete(self, record: ModelType) -> bool:
        """Soft delete the record when supported, otherwise delete it."""
        if not self.soft_deletes:
            return await self.force_delete(record)
        target = await self._attached(record)
        setattr(target, SOFT_DELETE_COLUMN, utc_now())
        await self.db.flush()
        self._mirror(target, record, [SOFT_DELETE_COLUMN])
        return True

    async def delete_by(self, conditions: Conditions) -> int:
        """Delete (soft when supported) records matching conditions."""
        if not self.soft_deletes:
            return await self.force_delete_by(conditions)
        stmt = self._scope_trashed(update(self.model), "without")
        stmt = stmt.where(*self._where(conditions)).values(
            {SOFT_DELETE_COLUMN: utc_now()}
        )
        result = await self.db.execute(
            stmt.execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def force_delete(self, record: ModelType) -> bool:
        """Permanently delete the record."""
        await self.db.delete(await self._attached(record))
        await self.db.flush()
        return True

    async def force_delete_by(self, conditions: Conditions) -> int:
        """Permanently delete records matching conditions, trashed ones included."""
        stmt = delete(self.model).where(*self._where(conditions))
        result = await self.db.execute(
            stmt.execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def restore(self, record: ModelType) -> bool:
        """Clear deleted_at on a soft-deleted record.

        Raises:
            UnsupportedOperationException: If the model has no soft deletes.
        """
        if not self.soft_deletes:
            raise UnsupportedOperationException("restore", self.model.__name__)
        target = await self._attached(record)
        setattr(target, SOFT_DELETE_COLUMN, None)
        await self.db.flush()
        self._mirror(target, record, [SOFT_DELETE_COLUMN])
        return True

    async def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelType:
        """Return the record matching attributes, creating it if missing."""
        record = await self.find_by(dict(attributes))
        if record is not None:
            return record
        return await self.create({**attributes, **(values or {})})

    async def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelType:
        """Update the record matching attributes with values, or create it."""
        record = await self.find_by(dict(attributes))
        if record is None:
            return await self.create({**attributes, **(values or {})})
        await self.update(record, values or {})
        return record

    async def upsert(
        self,
        values: Sequence[Mapping[str, Any]],
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int:
        """Insert rows, updating existing ones that collide on unique_by.

        Args:
            values: Rows to write (same keys in every row).
            unique_by: Columns of the unique constraint to resolve conflicts on.
            update: Columns to overwrite on conflict; defaults to every column
                in the rows except unique_by.

        Returns:
            Number of affected rows as reported by the driver.

        Raises:
            UnsupportedOperationException: If the dialect has no ON CONFLICT.
        """
        if not values:
            return 0
        rows = [dict(row) for row in values]
        for row in rows:
            self._check_attributes(row)
        for name in unique_by:
            self._column(name)
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(self.model).values(rows)
        elif dialect == "sqlite":
            stmt = sqlite.insert(self.model).values(rows)
        else:
            raise UnsupportedOperationException("upsert", dialect)
        if update is None:
            update = [name for name in rows[0] if name not in unique_by]
        if update:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(unique_by),
                set_={name: stmt.excluded[name] for name in update},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(unique_by))
        result = await self.db.execute(stmt)
        return result.rowcount

    async def sync(
        self,
        record: ModelType,
        relation: str,
        ids: Sequence[Any],
        detaching: bool = True,
    ) -> dict[str, list[Any]]:
        """Make a many-to-many relation hold exactly ids.

        With detaching=False, ids are only added.

        Returns:
            ``{"attached": [...], "detached": [...], "updated": []}``.
        """
        prop = self._many_to_many(relation, "sync")
        record = await self._attached(record)
        collection = await self._load_collection(record, relation)
        target_pk = self._target_pk_name(prop)
        wanted = list(dict.fromkeys(ids))
        current = {getattr(item, target_pk): item for item in collection}

        attached = [i for i in wanted if i not in current]
        detached = [i for i in current if i not in wanted] if detaching else []
        if attached:
            related = await self._fetch_related(prop, attached)
            collection.extend(related)
        for related_id in detached:
            collection.remove(current[related_id])
        await self.db.flush()
        return {"attached": attached, "detached": detached, "updated": []}

    async def detach(
        self, record: ModelType, relation: str, ids: Sequence[Any] | None = None
    ) -> int:
        """Remove ids (every related record when None) from a many-to-many relation."""
        prop = self._many_to_many(relation, "detach")
        record = await self._attached(record)
        collection = await self._load_collection(record, relation)
        target_pk = self._target_pk_name(prop)
        wanted = None if ids is None else set(ids)
        removed = [
            item
            for item in collection
            if wanted is None or getattr(item, target_pk) in wanted
        ]
        for item in removed:
            collection.remove(item)
        await self.db.flush()
        return len(removed)

    # Helpers on already-loaded records

    async def load_relations(self, record: ModelType, relations: Relations) -> ModelType:
        """Eager load relations (dotted paths allowed) onto record.

        A detached record (e.g. one served from a cache) is swapped for the
        instance this session tracks, and that instance is returned.
        """
        if not relations:
            return record
        record = await self._attached(record)
        identity = sa_inspect(record).identity
        if identity is None:
            raise InvalidArgumentException(
                f"{self.model.__name__} instance is not persisted", "record"
            )
        stmt = self._apply_relations(select(self.model), relations).where(
            *(col == value for col, value in zip(self._primary_key_columns(), identity))
        )
        await self.db.execute(stmt.execution_options(populate_existing=True))
        return record

    def transform(self, record: ModelType) -> dict[str, Any]:
        """Return the plain dict form of record (loaded columns only)."""
        return record.to_dict()

    def is_unchanged(self, record: ModelType, data: Mapping[str, Any]) -> bool:
        """Return True if every value in data equals the record's loaded value.

        Unknown or not-loaded attributes count as changes.
        """
        state = sa_inspect(record)
        for name, value in data.items():
            if name not in self._mapper.column_attrs or name in state.unloaded:
                return False
            if getattr(record, name) != value:
                return False
        return True

    # Statement building

    def _select(
        self,
        columns: Columns,
        relations: Relations,
        conditions: Conditions | None = None,
        sorts: Sorts | None = None,
        *,
        trashed: Trashed = "without",
    ) -> Select[Any]:
        stmt = select(self.model)
        stmt = self._apply_columns(stmt, columns)
        stmt = self._apply_relations(stmt, relations)
        stmt = self._scope_trashed(stmt, trashed)
        stmt = stmt.where(*self._where(conditions))
        return self._apply_sort(stmt, sorts)

    def _apply_columns(self, stmt: Select[Any], columns: Columns) -> Select[Any]:
        if not columns or ALL_COLUMNS in columns:
            return stmt
        return stmt.options(load_only(*(self._column(name) for name in columns)))

    def _apply_relations(self, stmt: Select[Any], relations: Relations) -> Select[Any]:
        for path in relations:
            model: Any = self.model
            loader = None
            for name in path.split("."):
                prop = sa_inspect(model).relationships.get(name)
                if prop is None:
                    raise InvalidArgumentException(
                        f"Unknown relation '{name}' on {model.__name__}", "relations"
                    )
                attr = getattr(model, name)
                loader = selectinload(attr) if loader is None else loader.selectinload(attr)
                model = prop.mapper.class_
            if loader is not None:
                stmt = stmt.options(loader)
        return stmt

    def _apply_sort(self, stmt: Select[Any], sorts: Sorts | None) -> Select[Any]:
        for name, direction in (sorts or {}).items():
            direction = str(direction).lower()
            if direction not in _SORT_DIRECTIONS:
                raise InvalidArgumentException(
                    f"Sort direction for '{name}' must be 'asc' or 'desc'", "sorts"
                )
            col = self._column(name)
            stmt = stmt.order_by(col.asc() if direction == "asc" else col.desc())
        return stmt

    def _scope_trashed(self, stmt: Any, trashed: Trashed) -> Any:
        if not self.soft_deletes:
            if trashed == "only":
                raise UnsupportedOperationException("only_trashed", self.model.__name__)
            return stmt
        deleted_at = self._column(SOFT_DELETE_COLUMN)
        if trashed == "without":
            return stmt.where(deleted_at.is_(None))
        if trashed == "only":
            return stmt.where(deleted_at.is_not(None))
        return stmt

    def _where(self, conditions: Conditions | None) -> list[Any]:
        """Translate conditions into SQL expressions.

        Accepts a mapping of column -> value, or a sequence whose items are
        (column, operator, value) triples, (column, value) pairs or mappings.
        """
        if not conditions:
            return []
        if isinstance(conditions, Mapping):
            return [self._clause(name, "=", value) for name, value in conditions.items()]
        if isinstance(conditions, str):
            raise InvalidArgumentException(
                "conditions must be a mapping or a sequence of conditions", "conditions"
            )
        clauses = []
        for item in conditions:
            if isinstance(item, Mapping):
                clauses.extend(self._clause(name, "=", value) for name, value in item.items())
            elif isinstance(item, Sequence) and not isinstance(item, str) and len(item) == 3:
                clauses.append(self._clause(item[0], item[1], item[2]))
            elif isinstance(item, Sequence) and not isinstance(item, str) and len(item) == 2:
                clauses.append(self._clause(item[0], "=", item[1]))
            else:
                raise InvalidArgumentException(
                    f"Invalid condition {item!r}: expected (column, operator, value), "
                    "(column, value) or a mapping",
                    "conditions",
                )
        return clauses

    def _clause(self, name: str, op: str, value: Any) -> Any:
        op = str(op).lower()
        build = _OPERATORS.get(op)
        if build is None:
            raise InvalidArgumentException(f"Unsupported operator '{op}'", "conditions")
        if op in ("in", "not in") and (
            isinstance(value, str) or not isinstance(value, (Sequence, set, frozenset))
        ):
            raise InvalidArgumentException(
                f"Operator '{op}' requires a sequence of values", "conditions"
            )
        return build(self._column(name), value)

    def _column(self, name: str) -> Any:
        if name not in self._mapper.column_attrs:
            raise InvalidArgumentException(
                f"Unknown column '{name}' on {self.model.__name__}", name
            )
        return getattr(self.model, name)

    def _check_attributes(self, data: Mapping[str, Any]) -> None:
        for name in data:
            if name not in self._mapper.column_attrs:
                raise InvalidArgumentException(
                    f"Unknown attribute '{name}' on {self.model.__name__}", name
                )

    def _primary_key_columns(self) -> list[Any]:
        return [
            getattr(self.model, self._mapper.get_property_by_column(col).key)
            for col in self._mapper.primary_key
        ]

    # Many-to-many helpers

    def _many_to_many(self, relation: str, operation: str) -> RelationshipProperty[Any]:
        prop = self._mapper.relationships.get(relation)
        if prop is None:
            raise InvalidArgumentException(
                f"Unknown relation '{relation}' on {self.model.__name__}", "relation"
            )
        if prop.secondary is None:
            raise UnsupportedOperationException(
                f"{operation} on non many-to-many relation '{relation}'",
                self.model.__name__,
            )
        return prop

    async def _attached(self, record: ModelType) -> ModelType:
        """Return the instance this session tracks for record.

        Records unpickled from a cache are detached copies; they are swapped
        for the session instance with the same primary key (loaded if
        needed) so writes go through the unit of work. Only the changes a
        write asks for are applied to it, never the copy's other values.

        Raises:
            ResourceNotFoundException: If the row no longer exists.
        """
        state = sa_inspect(record)
        if not state.detached:
            return record
        target = await self.db.get(self.model, state.identity)
        if target is None:
            raise ResourceNotFoundException(
                self.model.__name__, ",".join(str(v) for v in state.identity)
            )
        return target

    @staticmethod
    def _mirror(source: Any, record: Any, names: Iterable[str]) -> None:
        """Copy names from the session instance back onto a detached record."""
        if source is record:
            return
        for name in names:
            setattr(record, name, getattr(source, name))

    async def _load_collection(self, record: ModelType, relation: str) -> Any:
        if relation in sa_inspect(record).unloaded:
            await self.db.refresh(record, [relation])
        return getattr(record, relation)

    @staticmethod
    def _target_pk_name(prop: RelationshipProperty[Any]) -> str:
        target = prop.mapper
        return target.get_property_by_column(target.primary_key[0]).key

    async def _fetch_related(
        self, prop: RelationshipProperty[Any], ids: list[Any]
    ) -> list[Any]:
        target: Any = prop.mapper.class_
        pk_name = self._target_pk_name(prop)
        result = await self.db.execute(select(target).where(getattr(target, pk_name).in_(ids)))
        found = {getattr(item, pk_name): item for item in result.scalars().all()}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ResourceNotFoundException(
                target.__name__, ",".join(str(i) for i in missing)
            )
        return [found[i] for i in ids]
