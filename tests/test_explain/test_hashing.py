"""Tests for context hashing."""

from __future__ import annotations

from docinterp.explain.hashing import cache_key, context_hash
from tests.conftest import sum_context


def test_hashes_are_stable() -> None:
    assert context_hash(sum_context()) == context_hash(sum_context())
    assert cache_key(sum_context()) == cache_key(sum_context())


def test_context_hash_ignores_import_order() -> None:
    a = sum_context(imports=["util", "path"])
    b = sum_context(imports=["path", "util"])
    assert context_hash(a) == context_hash(b)


def test_context_hash_covers_every_field() -> None:
    base = context_hash(sum_context())
    for change in (
        {"imports": ["util"]},
        {"language": "typescript"},
        {"surrounding_context": "nearby"},
        {"class_name": "MathUtils"},
        {"file_name": "src/other.js"},
    ):
        assert context_hash(sum_context(**change)) != base


def test_cache_key_is_narrow() -> None:
    base = cache_key(sum_context())
    assert cache_key(sum_context(imports=["util"])) == base
    assert cache_key(sum_context(surrounding_context="nearby")) == base
    assert cache_key(sum_context(function_name="other")) != base


def test_field_boundaries_do_not_collide() -> None:
    a = sum_context(function_name="ab", class_name="c")
    b = sum_context(function_name="a", class_name="bc")
    assert cache_key(a) != cache_key(b)
