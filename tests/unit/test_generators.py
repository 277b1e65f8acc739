"""Tests for the CUID primary key generator."""

from repocache.core.constants import CUID_LENGTH
from repocache.shared.utils.generators import generate_cuid


def test_generate_cuid_length_and_alphabet() -> None:
    value = generate_cuid()
    assert len(value) == CUID_LENGTH
    assert value.isalnum() and value == value.lower()
    assert value[0].isalpha()


def test_generate_cuid_unique() -> None:
    assert len({generate_cuid() for _ in range(1000)}) == 1000
