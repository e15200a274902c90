"""Tests for the identity-keyed association map."""

from __future__ import annotations

import pytest

from cotask import IdentityMap


class TestIdentityMapBasics:
    def test_keys_compare_by_identity_not_equality(self):
        first, second = [1], [1]
        mapping: IdentityMap[list[int], str] = IdentityMap()
        mapping.set(first, "first")
        mapping.set(second, "second")

        assert len(mapping) == 2
        assert mapping.get(first) == "first"
        assert mapping.get(second) == "second"
        assert [1] not in mapping

    def test_set_updates_in_place(self):
        a, b = object(), object()
        mapping = IdentityMap([(a, 1), (b, 2)])
        mapping.set(a, 10)

        assert mapping.items() == [(a, 10), (b, 2)]
        assert mapping.choose() is a

    def test_get_missing_returns_default(self):
        mapping: IdentityMap[object, int] = IdentityMap()
        assert mapping.get(object()) is None
        assert mapping.get(object(), 7) == 7

    def test_get_default_inserts_once(self):
        key = object()
        mapping: IdentityMap[object, list[int]] = IdentityMap()
        calls = []

        def factory() -> list[int]:
            calls.append(1)
            return []

        mapping.get_default(key, factory).append(1)
        mapping.get_default(key, factory).append(2)

        assert mapping.get(key) == [1, 2]
        assert len(calls) == 1

    def test_remove_returns_value_or_none(self):
        key = object()
        mapping = IdentityMap([(key, "v")])

        assert mapping.remove(key) == "v"
        assert mapping.remove(key) is None
        assert len(mapping) == 0
        assert not mapping


class TestIdentityMapEnumeration:
    def test_items_is_a_snapshot(self):
        keys = [object() for _ in range(4)]
        mapping = IdentityMap([(k, i) for i, k in enumerate(keys)])

        seen = []
        for key, value in mapping.items():
            seen.append(value)
            mapping.remove(key)

        assert seen == [0, 1, 2, 3]
        assert len(mapping) == 0

    def test_choose_on_empty_raises(self):
        with pytest.raises(KeyError):
            IdentityMap().choose()

    def test_copy_is_independent(self):
        a, b = object(), object()
        original = IdentityMap([(a, 1)])
        duplicate = original.copy()
        duplicate.set(b, 2)

        assert b not in original
        assert duplicate.keys() == [a, b]

    def test_clear_and_unhashable_keys(self):
        key = {"unhashable": True}
        mapping = IdentityMap([(key, 1)])
        assert key in mapping
        assert list(mapping) == [key]

        mapping.clear()
        assert key not in mapping
