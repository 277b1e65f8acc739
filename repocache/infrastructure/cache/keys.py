"""Cache key derivation. Single place for key format (DRY).

Keys have the form ``{tag}:{operation}_{md5}`` where the hash covers the
canonical JSON of the call arguments. Arguments are converted with
``canonicalize``, a single-dispatch function: register an implementation
for a new argument type to control how it contributes to cache keys.

Tag and operation must not contain CACHE_KEY_SEP, since the tag is read
back from the key by splitting on the first separator.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from repocache.core.constants import (
    CACHE_KEY_SEP,
    CACHE_TAG_INDEX_SUFFIX,
    CACHE_TAG_SET_PREFIX,
    CACHE_TAG_SET_SUFFIX,
)


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


@singledispatch
def canonicalize(value: Any) -> Any:
    """Return a JSON-safe, order-stable form of value for key hashing.

    Objects are reduced, in order of preference, to their to_dict() mapping,
    their dataclass fields, or their public attributes. An object offering
    none of these is represented by an identity token, which differs between
    instances and therefore never produces a shared cache entry.
    """
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return canonicalize(to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return canonicalize(dataclasses.asdict(value))
    public = {
        name: attr
        for name, attr in getattr(value, "__dict__", {}).items()
        if not name.startswith("_")
    }
    if public:
        return canonicalize(public)
    return f"<{type(value).__qualname__}@{id(value):x}>"


@canonicalize.register(type(None))
@canonicalize.register(bool)
@canonicalize.register(int)
@canonicalize.register(float)
@canonicalize.register(str)
def _(value: Any) -> Any:
    return value


@canonicalize.register(Mapping)
def _(value: Mapping[Any, Any]) -> dict[str, Any]:
    return {str(k): canonicalize(v) for k, v in value.items()}


@canonicalize.register(list)
@canonicalize.register(tuple)
def _(value: list[Any] | tuple[Any, ...]) -> list[Any]:
    return [canonicalize(v) for v in value]


@canonicalize.register(set)
@canonicalize.register(frozenset)
def _(value: set[Any] | frozenset[Any]) -> list[Any]:
    items = [canonicalize(v) for v in value]
    return sorted(items, key=_canonical_json)


@canonicalize.register(datetime)
@canonicalize.register(date)
@canonicalize.register(time)
def _(value: datetime | date | time) -> str:
    return value.isoformat()


@canonicalize.register(Decimal)
@canonicalize.register(UUID)
def _(value: Decimal | UUID) -> str:
    return str(value)


@canonicalize.register(bytes)
def _(value: bytes) -> str:
    return value.hex()


@canonicalize.register(Enum)
def _(value: Enum) -> Any:
    return canonicalize(value.value)


@canonicalize.register(BaseModel)
def _(value: BaseModel) -> Any:
    return canonicalize(value.model_dump(mode="json"))


def _canonical_json(data: Any) -> str:
    """Canonical JSON for deterministic hashing (sorted keys, no spaces)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _is_blank(value: Any) -> bool:
    """True for values meaning "no argument supplied": None, [] and {}."""
    return value is None or value == [] or value == {}


def hash_arguments(arguments: Mapping[str, Any]) -> str:
    """Return the MD5 hex digest of the canonical form of arguments.

    Arguments whose canonical form is None or an empty list/mapping are
    dropped; the remaining ones keep their parameter name so dropping one
    never shifts another into its place.
    """
    payload: dict[str, Any] = {}
    for name, value in arguments.items():
        canonical = canonicalize(value)
        if not _is_blank(canonical):
            payload[str(name)] = canonical
    digest = hashlib.md5(_canonical_json(payload).encode(), usedforsecurity=False)
    return digest.hexdigest()


def derive_key(tag: str, operation: str, arguments: Mapping[str, Any]) -> str:
    """Cache key for a repository read: ``{tag}:{operation}_{hash}``.

    Args:
        tag: Tag of the decorated repository (its class name).
        operation: Repository method name (e.g. 'find', 'count').
        arguments: Parameter name -> value, defaults applied.

    Returns:
        Key stable across processes for semantically equal arguments.

    Raises:
        ValueError: If tag or operation is empty or contains CACHE_KEY_SEP.
    """
    _validate_key_component(tag, "tag")
    _validate_key_component(operation, "operation")
    return f"{tag}{CACHE_KEY_SEP}{operation}_{hash_arguments(arguments)}"


def extract_tag(key: str) -> str:
    """Return the tag part of a key (substring before the first separator)."""
    return key.split(CACHE_KEY_SEP, 1)[0]


def tag_index_key(tag: str) -> str:
    """Key of the emulated index listing every key written under tag."""
    return f"{tag}{CACHE_TAG_INDEX_SUFFIX}"


def tag_set_key(tag: str) -> str:
    """Key of the native tag set kept by taggable stores."""
    return f"{CACHE_TAG_SET_PREFIX}{CACHE_KEY_SEP}{tag}{CACHE_KEY_SEP}{CACHE_TAG_SET_SUFFIX}"
