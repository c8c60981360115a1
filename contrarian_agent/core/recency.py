"""Bounded set with recency bias: on overflow keep only the newest entries."""

from __future__ import annotations

from typing import Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)


class RecencySet(Generic[K]):
    """
    Insertion-ordered set capped at `capacity`.

    When an add pushes the size past capacity, the set is trimmed to the
    `keep` most recently inserted keys (capacity // 2 by default).
    """

    def __init__(self, capacity: int, keep: int | None = None) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        keep = capacity // 2 if keep is None else keep
        if not (0 < keep <= capacity):
            raise ValueError("keep must be between 1 and capacity")
        self._capacity = capacity
        self._keep = keep
        # dict preserves insertion order; values unused
        self._items: dict[K, None] = {}

    def add(self, key: K) -> None:
        if key in self._items:
            return
        self._items[key] = None
        if len(self._items) > self._capacity:
            recent = list(self._items)[-self._keep:]
            self._items = dict.fromkeys(recent)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[K]:
        return iter(self._items)
