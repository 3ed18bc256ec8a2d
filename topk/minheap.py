"""A min-heap that keeps track of the top-K items of a sketch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = [
    "Item",
    "MinHeap",
    "SIZEOF_STRING_INT_MAP",
    "SIZEOF_STRING",
    "SIZEOF_INT",
    "SIZEOF_UINT32",
    "SIZEOF_FLOAT32",
    "SIZEOF_ITEM",
    "SIZEOF_MIN_STRUCT",
]

# Memory footprints (in bytes) of the underlying 64-bit layout, used for size estimates.
SIZEOF_STRING_INT_MAP = 8
SIZEOF_STRING = 16
SIZEOF_INT = 8
SIZEOF_UINT32 = 4
SIZEOF_FLOAT32 = 4
SIZEOF_ITEM = 32
SIZEOF_MIN_STRUCT = 48


@dataclass
class Item:
    """A heap entry: fingerprint, item string and its count."""

    fingerprint: int
    item: str
    count: int


class MinHeap:
    """Min-heap of at most ``k`` items ordered by count, then by item string."""

    def __init__(self, k: int) -> None:
        self.k = k
        self.items: list[Item] = []
        self.index: dict[str, int] = {}
        self.stored_keys_bytes = 0

    def size_bytes(self) -> int:
        """Estimated memory usage of the heap in bytes."""
        capacity = max(self.k, len(self.items))
        items_size = capacity * SIZEOF_ITEM + self.stored_keys_bytes
        index_size = SIZEOF_STRING_INT_MAP + (SIZEOF_INT + SIZEOF_STRING) * len(self.index)
        return SIZEOF_MIN_STRUCT + items_size + index_size

    def reinit(self) -> None:
        """Restore heap order and drop items whose count is zero."""
        self._heapify()
        while self.items and self.items[0].count == 0:
            removed = self._heap_pop()
            self.index.pop(removed.item, None)

    def full(self) -> bool:
        return len(self.items) == self.k

    def __len__(self) -> int:
        return len(self.items)

    def less(self, i: int, j: int) -> bool:
        a, b = self.items[i], self.items[j]
        if a.count == b.count:
            return a.item < b.item
        return a.count < b.count

    def swap(self, i: int, j: int) -> None:
        items = self.items
        name_i, name_j = items[i].item, items[j].item
        items[i], items[j] = items[j], items[i]
        self.index[name_i] = j
        self.index[name_j] = i

    def push(self, item: Item) -> None:
        """Append an item at the end without restoring heap order."""
        self.items.append(item)
        self.index[item.item] = len(self.items) - 1

    def pop(self) -> Item:
        """Remove and return the last item without restoring heap order."""
        last = self.items.pop()
        self.index.pop(last.item, None)
        return last

    def min(self) -> int:
        """The minimum count in the heap, or 0 if it is empty."""
        return self.items[0].count if self.items else 0

    def find(self, item: str) -> Optional[int]:
        """Position of ``item`` in the heap, or None if absent."""
        return self.index.get(item)

    def __contains__(self, item: object) -> bool:
        return item in self.index

    def get(self, item: str) -> Optional[Item]:
        position = self.index.get(item)
        return None if position is None else self.items[position]

    def update(self, item: str, fingerprint: int, count: int) -> bool:
        """Insert or update ``item``; return whether it is now in the heap."""
        if count < self.min() and self.full():
            return False

        position = self.find(item)
        if position is not None:
            self.items[position].count = count
            self._fix(position)
            return True

        self.stored_keys_bytes += len(item.encode("utf-8"))

        if not self.full():
            self._heap_push(Item(fingerprint=fingerprint, item=item, count=count))
            return True

        evicted = self.items[0].item
        self.stored_keys_bytes -= len(evicted.encode("utf-8"))
        del self.index[evicted]
        self.items[0] = Item(fingerprint=fingerprint, item=item, count=count)
        self.index[item] = 0
        self._fix(0)
        return True

    def reset(self) -> None:
        self.items.clear()
        self.index.clear()
        self.stored_keys_bytes = 0

    def _heapify(self) -> None:
        n = len(self.items)
        for i in range(n // 2 - 1, -1, -1):
            self._down(i, n)

    def _heap_push(self, item: Item) -> None:
        self.push(item)
        self._up(len(self.items) - 1)

    def _heap_pop(self) -> Item:
        n = len(self.items) - 1
        self.swap(0, n)
        self._down(0, n)
        return self.pop()

    def _fix(self, i: int) -> None:
        if not self._down(i, len(self.items)):
            self._up(i)

    def _up(self, j: int) -> None:
        while j > 0:
            parent = (j - 1) // 2
            if not self.less(j, parent):
                break
            self.swap(parent, j)
            j = parent

    def _down(self, start: int, n: int) -> bool:
        i = start
        while True:
            left = 2 * i + 1
            if left >= n:
                break
            child = left
            right = left + 1
            if right < n and self.less(right, left):
                child = right
            if not self.less(child, i):
                break
            self.swap(i, child)
            i = child
        return i > start