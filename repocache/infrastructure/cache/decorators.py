"""Method decorators for cached repositories.

``cached_read`` turns an async method into a read-through call: the call is
bound to the method signature (defaults applied), a key is derived from the
method name and bound arguments, and the body runs only on a cache miss.

``invalidates_cache`` runs the body first and flushes the owner's tag when
the result reports a change.

The owner (first argument) must provide:
- ``cache``: a CacheProtocol,
- ``ttl``: int | None,
- ``tag``: str,
- ``cache_key(operation, arguments) -> str``,
- ``clear_cache()`` coroutine.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def mutation_applied(result: Any) -> bool:
    """Return True if a write result means stored data changed.

    bool results are taken as is, integer row counts are changes when non-zero,
    anything else (records, sync summaries) always counts as a change.
    """
    if isinstance(result, bool):
        return result
    if isinstance(result, int):
        return result != 0
    return True


def cached_read(
    operation: str | None = None,
    *,
    bypass: str | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator caching the result of an async repository read.

    Args:
        operation: Name used in the key; defaults to the method name.
        bypass: Name of a boolean parameter; when the call passes False the
            cache is neither read nor written. The parameter never takes part
            in the key.

    Returns:
        Decorator for async methods of a cache owner.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        signature = inspect.signature(func)
        name = operation or func.__name__

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            arguments = dict(bound.arguments)
            owner = arguments.pop(next(iter(signature.parameters)))
            if bypass is not None and not arguments.pop(bypass):
                logger.debug("Cache BYPASS: %s.%s", owner.tag, name)
                return await func(*args, **kwargs)
            key = owner.cache_key(name, arguments)
            return await owner.cache.remember(
                key, owner.ttl, lambda: func(*args, **kwargs)
            )

        return wrapper

    return decorator


def invalidates_cache(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Decorator flushing the owner's tag after a successful write.

    The write runs first; an exception propagates and leaves the cache
    untouched. No flush happens when mutation_applied(result) is False.
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        result = await func(*args, **kwargs)
        if mutation_applied(result):
            owner: Any = args[0]
            await owner.clear_cache()
        return result

    return wrapper
