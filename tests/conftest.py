"""Pytest configuration and fixtures for repocache.

Cache fixtures run on the in-process MemoryStore; the ``cache`` fixture is
parametrized over both CacheService paths (native tags and tag index).
Repository fixtures use an in-memory SQLite database through aiosqlite.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from sqlalchemy import Column, ForeignKey, String, Table
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.pool import StaticPool

from repocache.core.config import Settings
from repocache.infrastructure.cache.cache_service import CacheService
from repocache.infrastructure.cache.stores.memory_store import MemoryStore
from repocache.infrastructure.persistence.database import Base
from repocache.infrastructure.persistence.models import (
    CuidMixin,
    SoftDeleteMixin,
    TimestampMixin,
)
from repocache.infrastructure.persistence.repositories import BaseRepository


# ---- Test models ----

user_tags = Table(
    "user_tags",
    Base.metadata,
    Column("user_id", ForeignKey("users.id"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id"), primary_key=True),
)


class Team(Base):
    """Model without soft deletes."""

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    members: Mapped[list[User]] = relationship(back_populates="team")


class Tag(CuidMixin, TimestampMixin, Base):
    """Model keyed by CUID with server-side timestamps."""

    __tablename__ = "tags"

    label: Mapped[str] = mapped_column(String(50), unique=True)


class User(SoftDeleteMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default="active")
    age: Mapped[int | None] = mapped_column(nullable=True)
    team_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
    team: Mapped[Team | None] = relationship(back_populates="members")
    tags: Mapped[list[Tag]] = relationship(secondary=user_tags)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, User)


class TeamRepository(BaseRepository[Team]):
    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Team)


class TagRepository(BaseRepository[Tag]):
    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Tag)


# ---- Settings and cache ----


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment's .env file."""
    values = {"cache_driver": "memory", "database_url": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock() -> list[float]:
    """Mutable fake clock; advance with clock[0] += seconds."""
    return [1000.0]


@pytest.fixture
def memory_store(clock: list[float]) -> MemoryStore:
    return MemoryStore(clock=lambda: clock[0])


@pytest.fixture(params=["native", "index"])
def cache(request, memory_store: MemoryStore) -> CacheService:
    """CacheService on the memory store, once per tag strategy."""
    tag_drivers = ["memory"] if request.param == "native" else ["redis"]
    settings = make_settings(cache_supported_tag_drivers=tag_drivers)
    return CacheService(memory_store, settings)


# ---- Database ----


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Session on a fresh in-memory SQLite database (schema created per test)."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def user_repo(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def team_repo(db_session: AsyncSession) -> TeamRepository:
    return TeamRepository(db_session)


@pytest.fixture
def tag_repo(db_session: AsyncSession) -> TagRepository:
    return TagRepository(db_session)
