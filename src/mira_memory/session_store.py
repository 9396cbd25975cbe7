# mira_memory/session_store.py
"""
Keyed per-conversation state.

Replaces process-wide dictionaries: each component receives its own
``SessionStore`` so independent engines (and tests) never share state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class SessionStore(Generic[T]):
    """In-memory table of per-conversation values with get-or-create semantics."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}

    def get(self, key: str) -> T | None:
        return self._items.get(key)

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T:
        """Return the value for ``key``, creating it with ``factory`` if absent."""
        value = self._items.get(key)
        if value is None:
            value = factory()
            self._items[key] = value
        return value

    def set(self, key: str, value: T) -> None:
        self._items[key] = value

    def pop(self, key: str) -> T | None:
        return self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items.keys())

    def items(self) -> list[tuple[str, T]]:
        return list(self._items.items())

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))
