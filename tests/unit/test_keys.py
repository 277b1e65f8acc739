"""Tests for cache key derivation (format, determinism, canonical forms)."""

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest
from pydantic import BaseModel

from repocache.infrastructure.cache.keys import (
    canonicalize,
    derive_key,
    extract_tag,
    hash_arguments,
    tag_index_key,
    tag_set_key,
)


class Status(Enum):
    ACTIVE = "active"


class Filters(BaseModel):
    status: str
    limit: int = 10


@dataclass
class Point:
    x: int
    y: int


class WithToDict:
    def __init__(self, value: int) -> None:
        self._value = value

    def to_dict(self) -> dict:
        return {"value": self._value}


class Opaque:
    __slots__ = ()


class TestDeriveKeyFormat:
    """Keys have the form {tag}:{operation}_{md5}."""

    def test_format(self) -> None:
        key = derive_key("UserRepository", "find", {"id": 5})
        tag, rest = key.split(":", 1)
        operation, digest = rest.rsplit("_", 1)
        assert tag == "UserRepository"
        assert operation == "find"
        assert len(digest) == 32

    def test_hash_is_md5_of_canonical_json(self) -> None:
        expected = hashlib.md5(b'{"a":1,"b":"x"}').hexdigest()
        assert hash_arguments({"b": "x", "a": 1}) == expected

    def test_extract_tag(self) -> None:
        key = derive_key("UserRepository", "count", {})
        assert extract_tag(key) == "UserRepository"

    @pytest.mark.parametrize("tag", ["", "User:Repository"])
    def test_invalid_tag_rejected(self, tag: str) -> None:
        with pytest.raises(ValueError):
            derive_key(tag, "find", {})

    def test_invalid_operation_rejected(self) -> None:
        with pytest.raises(ValueError):
            derive_key("UserRepository", "find:by", {})

    def test_tag_index_and_set_keys(self) -> None:
        assert tag_index_key("UserRepository") == "UserRepository_cache_keys"
        assert tag_set_key("UserRepository") == "tag:UserRepository:entries"


class TestDeriveKeyDeterminism:
    """Equal arguments give equal keys; different arguments differ."""

    def test_same_arguments_same_key(self) -> None:
        args = {"conditions": {"status": "active"}, "columns": ["*"]}
        assert derive_key("R", "all", args) == derive_key("R", "all", dict(args))

    def test_mapping_order_independent(self) -> None:
        k1 = derive_key("R", "filter", {"filters": {"a": 1, "b": 2}})
        k2 = derive_key("R", "filter", {"filters": {"b": 2, "a": 1}})
        assert k1 == k2

    def test_sequence_order_matters(self) -> None:
        k1 = derive_key("R", "all", {"columns": ["id", "name"]})
        k2 = derive_key("R", "all", {"columns": ["name", "id"]})
        assert k1 != k2

    def test_tuple_and_list_equivalent(self) -> None:
        k1 = derive_key("R", "all", {"columns": ("id", "name")})
        k2 = derive_key("R", "all", {"columns": ["id", "name"]})
        assert k1 == k2

    def test_different_values_differ(self) -> None:
        assert derive_key("R", "find", {"id": 5}) != derive_key("R", "find", {"id": 6})

    def test_different_operations_differ(self) -> None:
        assert derive_key("R", "find", {"id": 5}) != derive_key("R", "first", {"id": 5})

    def test_different_tags_differ(self) -> None:
        assert derive_key("A", "find", {"id": 5}) != derive_key("B", "find", {"id": 5})

    def test_int_and_str_differ(self) -> None:
        assert derive_key("R", "find", {"id": 5}) != derive_key("R", "find", {"id": "5"})


class TestBlankArguments:
    """None, [] and {} are dropped so omitted and empty arguments share a key."""

    def test_blank_values_dropped(self) -> None:
        full = {"conditions": None, "relations": [], "sorts": {}, "per_page": 10}
        assert hash_arguments(full) == hash_arguments({"per_page": 10})

    def test_empty_tuple_dropped(self) -> None:
        assert hash_arguments({"relations": ()}) == hash_arguments({})

    def test_dropping_keeps_names(self) -> None:
        """A dropped argument never shifts another into its position."""
        k1 = hash_arguments({"a": None, "b": 1})
        k2 = hash_arguments({"a": 1, "b": None})
        assert k1 != k2

    def test_false_and_zero_kept(self) -> None:
        assert hash_arguments({"flag": False}) != hash_arguments({})
        assert hash_arguments({"n": 0}) != hash_arguments({})


class TestCanonicalize:
    """Per-type canonical forms."""

    def test_scalars_unchanged(self) -> None:
        assert canonicalize(1) == 1
        assert canonicalize("x") == "x"
        assert canonicalize(None) is None
        assert canonicalize(True) is True

    def test_datetime_isoformat(self) -> None:
        dt = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
        assert canonicalize(dt) == "2025-01-15T12:00:00+00:00"

    def test_decimal_uuid_bytes(self) -> None:
        assert canonicalize(Decimal("1.50")) == "1.50"
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert canonicalize(uid) == str(uid)
        assert canonicalize(b"\x01\xff") == "01ff"

    def test_enum_value(self) -> None:
        assert canonicalize(Status.ACTIVE) == "active"

    def test_set_sorted(self) -> None:
        assert canonicalize({3, 1, 2}) == [1, 2, 3]
        assert hash_arguments({"ids": {"b", "a"}}) == hash_arguments({"ids": {"a", "b"}})

    def test_mapping_keys_stringified(self) -> None:
        assert canonicalize({1: "a"}) == {"1": "a"}

    def test_pydantic_model(self) -> None:
        assert canonicalize(Filters(status="active")) == {"status": "active", "limit": 10}

    def test_dataclass(self) -> None:
        assert canonicalize(Point(1, 2)) == {"x": 1, "y": 2}

    def test_to_dict_preferred(self) -> None:
        assert canonicalize(WithToDict(3)) == {"value": 3}

    def test_public_attributes(self) -> None:
        class Criteria:
            def __init__(self) -> None:
                self.status = "active"
                self._secret = "hidden"

        assert canonicalize(Criteria()) == {"status": "active"}

    def test_equal_objects_share_key(self) -> None:
        assert hash_arguments({"p": Point(1, 2)}) == hash_arguments({"p": Point(1, 2)})

    def test_opaque_objects_never_share_key(self) -> None:
        a, b = Opaque(), Opaque()
        assert hash_arguments({"o": a}) != hash_arguments({"o": b})
        assert canonicalize(a).startswith("<")

    def test_nested_structures(self) -> None:
        value = {"conditions": [("age", ">", 18), {"status": Status.ACTIVE}]}
        assert canonicalize(value) == {
            "conditions": [["age", ">", 18], {"status": "active"}]
        }
