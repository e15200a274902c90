"""Identity-keyed association map.

Keys are compared by identity (``is``), never by equality or hash, so
unhashable objects and objects with custom ``__eq__`` can be used as keys.
Each entry keeps a strong reference to its key, which keeps ``id(key)``
stable for as long as the entry exists.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class IdentityMap(Generic[K, V]):
    """Mapping from object identities to values, in insertion order."""

    __slots__ = ("_entries",)

    def __init__(self, pairs: list[tuple[K, V]] | None = None) -> None:
        self._entries: dict[int, tuple[K, V]] = {}
        for key, value in pairs or ():
            self.set(key, value)

    def set(self, key: K, value: V) -> None:
        ident = id(key)
        if ident in self._entries:
            # keep insertion position on update
            self._entries[ident] = (self._entries[ident][0], value)
        else:
            self._entries[ident] = (key, value)

    def get(self, key: K, default: V | None = None) -> V | None:
        entry = self._entries.get(id(key))
        if entry is None:
            return default
        return entry[1]

    def get_default(self, key: K, factory: Callable[[], V]) -> V:
        """Return the value for ``key``, inserting ``factory()`` if absent."""
        entry = self._entries.get(id(key))
        if entry is not None:
            return entry[1]
        value = factory()
        self._entries[id(key)] = (key, value)
        return value

    def remove(self, key: K) -> V | None:
        """Remove ``key`` and return its value, or ``None`` if it was absent."""
        entry = self._entries.pop(id(key), None)
        if entry is None:
            return None
        return entry[1]

    def choose(self) -> K:
        """Return the oldest key."""
        if not self._entries:
            raise KeyError("choose() on an empty IdentityMap")
        return next(iter(self._entries.values()))[0]

    def items(self) -> list[tuple[K, V]]:
        """Snapshot of the entries; safe to mutate the map while iterating it."""
        return list(self._entries.values())

    def keys(self) -> list[K]:
        return [key for key, _ in self._entries.values()]

    def values(self) -> list[V]:
        return [value for _, value in self._entries.values()]

    def copy(self) -> IdentityMap[K, V]:
        return IdentityMap(self.items())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return id(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"IdentityMap(size={len(self._entries)})"


__all__ = ["IdentityMap"]
