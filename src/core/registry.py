# src/core/registry.py — v1
"""Keyed registry with insert-if-absent semantics.

Holds process-wide coordination state (in-flight runs, the in-memory run
table). Owners receive an instance by injection; nothing reaches for a
module-level singleton. All mutation happens on the event loop thread, so
each method is atomic with respect to other coroutines.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class KeyedRegistry(Generic[K, V]):
    """Small mapping wrapper exposing only single-writer-per-key operations."""

    def __init__(self) -> None:
        self._items: dict[K, V] = {}

    def get(self, key: K) -> V | None:
        return self._items.get(key)

    def insert_if_absent(self, key: K, factory: Callable[[], V]) -> tuple[V, bool]:
        """Return (value, inserted). factory runs only when key is absent."""
        existing = self._items.get(key)
        if existing is not None:
            return existing, False
        value = factory()
        self._items[key] = value
        return value, True

    def remove(self, key: K, expected: V | None = None) -> V | None:
        """Remove key. With expected, remove only if the stored value is it."""
        current = self._items.get(key)
        if current is None:
            return None
        if expected is not None and current is not expected:
            return None
        return self._items.pop(key)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._items))
