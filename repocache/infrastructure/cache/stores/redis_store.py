"""Redis-backed cache store.

Entries are pickled and written with SET ... EX. Native tag groups are
Redis sets (see keys.tag_set_key) written in the same MULTI/EXEC as the
entry and flushed in one transaction. Sets get an expiry that is only ever
extended (EXPIRE NX, then EXPIRE GT; Redis 7.0 or later), so a set lives as
long as its longest-lived entry.

Connection and timeout failures raise CacheUnavailableException; other
Redis errors raise CacheOperationException. Both propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis

from repocache.infrastructure.cache.keys import tag_set_key
from repocache.infrastructure.cache.stores.serialization import deserialize, serialize
from repocache.infrastructure.exceptions import (
    CacheOperationException,
    CacheUnavailableException,
)

if TYPE_CHECKING:
    from repocache.core.config import Settings

logger = logging.getLogger(__name__)


class RedisStore:
    """Async Redis store. Call connect() at startup and close() at shutdown."""

    name = "redis"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        *,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        socket_timeout: float = 5.0,
    ) -> None:
        """Initialize the store.

        Args:
            redis_client: Optional Redis client for testing or DI; when given,
                connect() only pings it.
            host: Redis host.
            port: Redis port.
            db: Redis database index.
            password: Optional Redis password.
            socket_timeout: Connect and read timeout in seconds.
        """
        self.redis = redis_client
        self.host = host
        self.port = port
        self.db = db
        self._password = password
        self._socket_timeout = socket_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisStore:
        """Build a store from redis_* settings."""
        return cls(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=(
                settings.redis_password.get_secret_value()
                if settings.redis_password
                else None
            ),
            socket_timeout=settings.redis_socket_timeout,
        )

    async def connect(self) -> None:
        """Create the client if needed and ping it.

        Raises:
            CacheUnavailableException: If Redis cannot be reached.
        """
        if self.redis is None:
            self.redis = redis.Redis(
                host=self.host,
                port=self.port,
                db=self.db,
                password=self._password,
                socket_connect_timeout=self._socket_timeout,
                socket_timeout=self._socket_timeout,
                socket_keepalive=True,
            )
        with self._translate_errors("connect", "-"):
            await self.redis.ping()
        logger.info("Redis cache connected: %s:%s", self.host, self.port)

    async def close(self) -> None:
        """Close the client. Safe to call when not connected."""
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis cache disconnected")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise CacheUnavailableException(self.name, "store is not connected")
        return self.redis

    @contextmanager
    def _translate_errors(self, operation: str, key: str) -> Iterator[None]:
        """Map redis exceptions to cache exceptions (logged, then raised)."""
        try:
            yield
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Cache %s unavailable for key %s: %s", operation, key, e)
            raise CacheUnavailableException(self.name, str(e)) from e
        except redis.RedisError as e:
            logger.exception("Cache %s error for key %s", operation, key)
            raise CacheOperationException(operation, key, str(e)) from e

    async def get(self, key: str) -> Any | None:
        client = self._client()
        with self._translate_errors("get", key):
            payload = await client.get(key)
        if payload is None:
            return None
        return deserialize(payload)

    async def put(self, key: str, value: Any, ttl: int) -> None:
        client = self._client()
        with self._translate_errors("set", key):
            await client.set(key, serialize(value), ex=ttl)

    async def forget(self, key: str) -> bool:
        client = self._client()
        with self._translate_errors("delete", key):
            deleted = await client.delete(key)
        return bool(deleted)

    async def add_to_set(self, key: str, member: str, ttl: int | None = None) -> None:
        client = self._client()
        with self._translate_errors("sadd", key):
            if ttl is None:
                await client.sadd(key, member)
                return
            async with client.pipeline(transaction=True) as pipe:
                pipe.sadd(key, member)
                _extend_expiry(pipe, key, ttl)
                await pipe.execute()

    async def set_members(self, key: str) -> set[str]:
        client = self._client()
        with self._translate_errors("smembers", key):
            members = await client.smembers(key)
        return {m.decode() if isinstance(m, bytes) else m for m in members}

    async def put_tagged(
        self, tags: list[str], key: str, value: Any, ttl: int
    ) -> None:
        client = self._client()
        payload = serialize(value)
        with self._translate_errors("set", key):
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(key, payload, ex=ttl)
                for tag in tags:
                    pipe.sadd(tag_set_key(tag), key)
                    _extend_expiry(pipe, tag_set_key(tag), ttl)
                await pipe.execute()

    async def flush_tags(self, tags: list[str]) -> int:
        client = self._client()
        removed = 0
        for tag in tags:
            set_key = tag_set_key(tag)
            members = await self.set_members(set_key)
            with self._translate_errors("flush", set_key):
                async with client.pipeline(transaction=True) as pipe:
                    if members:
                        pipe.unlink(*members)
                    pipe.delete(set_key)
                    results = await pipe.execute()
            if members:
                removed += int(results[0] or 0)
        return removed


def _extend_expiry(pipe: Any, key: str, ttl: int) -> None:
    """Queue commands giving key at least ttl seconds to live, never less."""
    pipe.expire(key, ttl, nx=True)
    pipe.expire(key, ttl, gt=True)
