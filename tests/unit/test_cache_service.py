"""Tests for CacheService (remember, forget, flush_by_tag, key prefix, errors).

The ``cache`` fixture runs every test in TestRememberAndFlush twice: once
with native tag groups and once with the emulated tag index.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from repocache.core.config import Settings
from repocache.infrastructure.cache.cache_service import CacheService
from repocache.infrastructure.cache.keys import (
    derive_key,
    hash_arguments,
    tag_index_key,
    tag_set_key,
)
from repocache.infrastructure.cache.stores.memory_store import MemoryStore
from repocache.infrastructure.exceptions import (
    CacheConfigurationException,
    CacheOperationException,
    CacheUnavailableException,
)


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"cache_driver": "memory"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class Counter:
    """Zero-argument coroutine function counting its calls."""

    def __init__(self, value: Any = "computed") -> None:
        self.value = value
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        return self.value


class PlainStore:
    """Store with no native tag support."""

    name = "redis"

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    async def get(self, key: str) -> Any: ...
    async def put(self, key: str, value: Any, ttl: int) -> None: ...
    async def forget(self, key: str) -> bool:
        return False
    async def add_to_set(self, key: str, member: str, ttl: int | None = None) -> None: ...
    async def set_members(self, key: str) -> set[str]:
        return set()


class FailingPutStore(MemoryStore):
    async def put(self, key: str, value: Any, ttl: int) -> None:
        raise CacheOperationException("set", key, "disk full")


class TestRememberAndFlush:
    async def test_miss_computes_and_hit_reuses(self, cache: CacheService) -> None:
        compute = Counter()
        key = derive_key("UserRepository", "count", {})
        assert await cache.remember(key, 60, compute) == "computed"
        assert await cache.remember(key, 60, compute) == "computed"
        assert compute.calls == 1

    async def test_entry_expires_after_ttl(
        self, cache: CacheService, clock: list[float]
    ) -> None:
        compute = Counter()
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, 10, compute)
        clock[0] += 11
        await cache.remember(key, 10, compute)
        assert compute.calls == 2

    async def test_none_ttl_uses_default(
        self, cache: CacheService, clock: list[float]
    ) -> None:
        compute = Counter()
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, None, compute)
        clock[0] += cache.default_ttl - 1
        await cache.remember(key, None, compute)
        assert compute.calls == 1
        clock[0] += 2
        await cache.remember(key, None, compute)
        assert compute.calls == 2

    async def test_none_result_not_stored(self, cache: CacheService) -> None:
        compute = Counter(value=None)
        key = derive_key("UserRepository", "find", {"id": 404})
        assert await cache.remember(key, 60, compute) is None
        assert await cache.remember(key, 60, compute) is None
        assert compute.calls == 2

    async def test_falsy_results_are_cached(self, cache: CacheService) -> None:
        for value in (0, False, []):
            compute = Counter(value=value)
            key = derive_key("UserRepository", "count", {"v": repr(value)})
            await cache.remember(key, 60, compute)
            assert await cache.remember(key, 60, compute) == value
            assert compute.calls == 1

    async def test_callback_error_propagates_and_stores_nothing(
        self, cache: CacheService
    ) -> None:
        key = derive_key("UserRepository", "first_or_fail", {})

        async def fail() -> Any:
            raise LookupError("no rows")

        with pytest.raises(LookupError):
            await cache.remember(key, 60, fail)
        compute = Counter()
        assert await cache.remember(key, 60, compute) == "computed"
        assert compute.calls == 1

    async def test_flush_by_tag_evicts_every_entry_of_tag(
        self, cache: CacheService
    ) -> None:
        users, posts = Counter("u"), Counter("p")
        user_keys = [
            derive_key("UserRepository", "find", {"id": i}) for i in range(3)
        ]
        post_key = derive_key("PostRepository", "count", {})
        for key in user_keys:
            await cache.remember(key, 60, users)
        await cache.remember(post_key, 60, posts)

        assert await cache.flush_by_tag("UserRepository") == 3

        for key in user_keys:
            await cache.remember(key, 60, users)
        await cache.remember(post_key, 60, posts)
        assert users.calls == 6
        assert posts.calls == 1

    async def test_flush_unknown_tag_is_noop(self, cache: CacheService) -> None:
        assert await cache.flush_by_tag("NothingCached") == 0

    async def test_flush_twice(self, cache: CacheService) -> None:
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, 60, Counter())
        assert await cache.flush_by_tag("UserRepository") == 1
        assert await cache.flush_by_tag("UserRepository") == 0

    async def test_forget(self, cache: CacheService) -> None:
        compute = Counter()
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, 60, compute)
        assert await cache.forget(key) is True
        assert await cache.forget(key) is False
        await cache.remember(key, 60, compute)
        assert compute.calls == 2


class TestTagStrategies:
    async def test_native_tags_write_tag_set(self, memory_store: MemoryStore) -> None:
        cache = CacheService(memory_store, _settings(cache_supported_tag_drivers=["memory"]))
        assert cache.supports_tags is True
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, 60, Counter())
        assert await memory_store.set_members(tag_set_key("UserRepository")) == {key}
        assert await memory_store.set_members(tag_index_key("UserRepository")) == set()

    async def test_index_records_key(self, memory_store: MemoryStore) -> None:
        cache = CacheService(memory_store, _settings(cache_supported_tag_drivers=["redis"]))
        assert cache.supports_tags is False
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, 60, Counter())
        assert await memory_store.set_members(tag_index_key("UserRepository")) == {key}

        await cache.flush_by_tag("UserRepository")
        assert await memory_store.set_members(tag_index_key("UserRepository")) == set()

    @pytest.mark.parametrize("tag_drivers", [["memory"], ["redis"]])
    async def test_tag_sets_expire_with_longest_entry(
        self, memory_store: MemoryStore, clock: list[float], tag_drivers: list[str]
    ) -> None:
        cache = CacheService(
            memory_store, _settings(cache_supported_tag_drivers=tag_drivers)
        )
        set_key = (
            tag_set_key("UserRepository")
            if cache.supports_tags
            else tag_index_key("UserRepository")
        )
        short = derive_key("UserRepository", "count", {})
        long = derive_key("UserRepository", "all", {})
        await cache.remember(long, 100, Counter())
        await cache.remember(short, 10, Counter())
        clock[0] += 50
        assert await memory_store.set_members(set_key) == {short, long}
        clock[0] += 50
        assert await memory_store.set_members(set_key) == set()

    async def test_index_written_before_entry(self) -> None:
        """A failed entry write leaves a dangling index member; flushing it is harmless."""
        store = FailingPutStore()
        cache = CacheService(store, _settings(cache_supported_tag_drivers=["redis"]))
        key = derive_key("UserRepository", "count", {})
        with pytest.raises(CacheOperationException):
            await cache.remember(key, 60, Counter())
        assert await store.set_members(tag_index_key("UserRepository")) == {key}
        assert await cache.flush_by_tag("UserRepository") == 0
        assert await store.set_members(tag_index_key("UserRepository")) == set()

    def test_tag_capable_driver_without_tagged_store_is_rejected(self) -> None:
        with pytest.raises(CacheConfigurationException):
            CacheService(PlainStore(), _settings(cache_supported_tag_drivers=["redis"]))

    def test_plain_store_uses_index(self) -> None:
        cache = CacheService(PlainStore(), _settings(cache_supported_tag_drivers=[]))
        assert cache.supports_tags is False
        assert cache.driver == "redis"


class TestKeyPrefix:
    async def test_prefix_namespaces_entries_and_tags(
        self, memory_store: MemoryStore
    ) -> None:
        cache = CacheService(
            memory_store,
            _settings(cache_prefix="app_", cache_supported_tag_drivers=["memory"]),
        )
        key = derive_key("UserRepository", "count", {})
        await cache.remember(key, 60, Counter(7))
        assert await memory_store.get("app_" + key) == 7
        assert await memory_store.get(key) is None
        assert await memory_store.set_members(tag_set_key("app_UserRepository")) == {
            "app_" + key
        }
        assert await cache.flush_by_tag("UserRepository") == 1

    def test_generate_key(self, memory_store: MemoryStore) -> None:
        cache = CacheService(memory_store, _settings(cache_prefix="app_"))
        key = cache.generate_key("UserRepository.find", {"id": 5})
        assert key == f"app_UserRepository.find_{hash_arguments({'id': 5})}"

    def test_generate_key_positional_args(self, memory_store: MemoryStore) -> None:
        cache = CacheService(memory_store, _settings())
        assert cache.generate_key("x", [1, "a"]) == cache.generate_key(
            "x", {"0": 1, "1": "a"}
        )


class TestBackendErrors:
    """Backend failures propagate; the service never computes without the cache."""

    async def test_get_failure_propagates_without_computing(self) -> None:
        store = AsyncMock()
        store.name = "memory"
        store.get.side_effect = CacheUnavailableException("memory", "down")
        cache = CacheService(store, _settings(cache_supported_tag_drivers=[]))
        compute = Counter()
        with pytest.raises(CacheUnavailableException):
            await cache.remember("UserRepository:count_x", 60, compute)
        assert compute.calls == 0

    async def test_flush_failure_propagates(self) -> None:
        store = AsyncMock()
        store.name = "memory"
        store.set_members.side_effect = CacheUnavailableException("memory", "down")
        cache = CacheService(store, _settings(cache_supported_tag_drivers=[]))
        with pytest.raises(CacheUnavailableException):
            await cache.flush_by_tag("UserRepository")

    async def test_connect_and_disconnect_delegate(self) -> None:
        store = AsyncMock()
        store.name = "memory"
        cache = CacheService(store, _settings(cache_supported_tag_drivers=[]))
        await cache.connect()
        await cache.disconnect()
        store.connect.assert_awaited_once()
        store.close.assert_awaited_once()
