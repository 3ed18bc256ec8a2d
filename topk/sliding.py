"""Sliding-window HeavyKeeper top-k sketch whose counters age out over a window of ticks."""

from __future__ import annotations

import dataclasses
import random
from dataclasses import dataclass, field
from typing import Iterator, Optional

from topk.hashing import bucket_index, fingerprint
from topk.minheap import SIZEOF_FLOAT32, SIZEOF_UINT32, Item, MinHeap
from topk.sketch import (
    DEFAULT_DECAY,
    DEFAULT_DECAY_LUT_SIZE,
    _decay_probability,
    _decay_table,
    _default_dimensions,
)

__all__ = [
    "SlidingBucket",
    "SlidingSketch",
    "SIZEOF_SLIDING_SKETCH_STRUCT",
    "SIZEOF_SLIDING_BUCKET_STRUCT",
]

# Memory footprints (in bytes) of the underlying 64-bit layout, used for size estimates.
SIZEOF_SLIDING_SKETCH_STRUCT = 112
SIZEOF_SLIDING_BUCKET_STRUCT = 40

_UINT32_MAX = 0xFFFFFFFF


@dataclass
class SlidingBucket:
    """A counter with its per-tick history and the fingerprint of the item it counts.

    ``counts`` is a circular buffer whose newest entry sits at ``first``;
    ``counts_sum`` is the sum of all entries.
    """

    fingerprint: int = 0
    counts: list[int] = field(default_factory=list)
    first: int = 0
    counts_sum: int = 0

    def tick(self) -> None:
        """Expire the oldest history entry and make room for a new one."""
        if self.counts_sum == 0:
            return
        last = (self.first - 1) % len(self.counts)
        self.counts_sum -= self.counts[last]
        self.counts[last] = 0
        self.first = last

    def nonzero_minimum_index(self) -> int:
        """Index of the smallest non-zero history entry, scanning from ``first``; 0 if none."""
        size = len(self.counts)
        best: Optional[int] = None
        best_index = 0
        for offset in range(size):
            position = (self.first + offset) % size
            value = self.counts[position]
            if value and (best is None or value < best):
                best = value
                best_index = position
        return best_index


class SlidingSketch:
    """Top-k sketch over a sliding window of ``window_size`` ticks.

    Defaults: depth ``max(3, log(k))``, width ``max(256, k*log(k))``,
    bucket history length ``window_size``, decay 0.9 and a decay
    look-up table of 256 entries. The history length is clamped to
    the range ``1..window_size``.
    """

    def __init__(
        self,
        k: int,
        window_size: int,
        depth: Optional[int] = None,
        width: Optional[int] = None,
        decay: Optional[float] = None,
        decay_lut_size: Optional[int] = None,
        bucket_history_length: Optional[int] = None,
    ) -> None:
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")
        if window_size < 1:
            raise ValueError(f"window_size must be positive, got {window_size}")
        default_depth, default_width = _default_dimensions(k)
        self.k = k
        self.window_size = window_size
        self.depth = default_depth if depth is None else depth
        self.width = default_width if width is None else width
        self.decay = DEFAULT_DECAY if decay is None else decay
        if self.depth < 1:
            raise ValueError(f"depth must be positive, got {self.depth}")
        if self.width < 1:
            raise ValueError(f"width must be positive, got {self.width}")

        history = window_size if bucket_history_length is None else bucket_history_length
        self.bucket_history_length = min(max(history, 1), window_size)

        lut_size = decay_lut_size if decay_lut_size else DEFAULT_DECAY_LUT_SIZE
        if lut_size < 0:
            raise ValueError(f"decay_lut_size must not be negative, got {lut_size}")
        self.decay_lut: list[float] = _decay_table(self.decay, lut_size)

        self.next_bucket_to_expire = 0
        self.buckets: list[SlidingBucket] = [
            SlidingBucket(counts=[0] * self.bucket_history_length)
            for _ in range(self.width * self.depth)
        ]
        self.heap = MinHeap(self.k)
        self._random = random.Random()

    def size_bytes(self) -> int:
        """Estimated size of the sketch in bytes."""
        per_bucket = SIZEOF_SLIDING_BUCKET_STRUCT + SIZEOF_UINT32 * self.bucket_history_length
        buckets_size = per_bucket * len(self.buckets)
        decay_table_size = len(self.decay_lut) * SIZEOF_FLOAT32
        return (
            SIZEOF_SLIDING_SKETCH_STRUCT
            + buckets_size
            + self.heap.size_bytes()
            + decay_table_size
        )

    def tick(self) -> None:
        """Advance time by one of the window's ticks."""
        self.ticks(1)

    def ticks(self, n: int) -> None:
        """Advance time by ``n`` ticks."""
        if n < 0:
            raise ValueError(f"cannot advance by a negative number of ticks: {n}")
        if n == 0:
            return
        total = len(self.buckets)
        to_age = max(1, (n * self.bucket_history_length * total) // self.window_size)
        position = self.next_bucket_to_expire
        for _ in range(to_age):
            self.buckets[position].tick()
            position = (position + 1) % total
        self.next_bucket_to_expire = position
        self._recount_heap_items()

    def _rows(self, item: str) -> Iterator[SlidingBucket]:
        for row in range(self.depth):
            yield self.buckets[bucket_index(item, row, self.width)]

    def _bucket_estimate(self, item: str, fp: int) -> int:
        return max(
            (bucket.counts_sum for bucket in self._rows(item) if bucket.fingerprint == fp),
            default=0,
        )

    def count(self, item: str) -> int:
        """Estimated count of ``item`` within the current window."""
        entry = self.heap.get(item)
        if entry is not None and entry.item == item:
            return entry.count
        return self._bucket_estimate(item, fingerprint(item))

    def _recount_heap_items(self) -> None:
        for entry in self.heap.items:
            if entry.count == 0:
                continue
            entry.count = self._bucket_estimate(entry.item, entry.fingerprint)
        self.heap.reinit()

    def incr(self, item: str) -> bool:
        """Count a single instance of ``item``; return whether it is in the top K."""
        return self.add(item, 1)

    def add(self, item: str, increment: int) -> bool:
        """Add ``increment`` to ``item``'s count; return whether it is in the top K."""
        if not 0 <= increment <= _UINT32_MAX:
            raise ValueError(f"increment must be an unsigned 32-bit value, got {increment}")
        fp = fingerprint(item)
        max_sum = 0

        for bucket in self._rows(item):
            count = bucket.counts_sum
            if count == 0:
                bucket.fingerprint = fp
                bucket.counts[:] = [0] * len(bucket.counts)
                bucket.counts[bucket.first] = increment
                bucket.counts_sum = increment
                max_sum = max(max_sum, increment)
            elif bucket.fingerprint == fp:
                bucket.counts[bucket.first] = (bucket.counts[bucket.first] + increment) & _UINT32_MAX
                count = (count + increment) & _UINT32_MAX
                bucket.counts_sum = count
                max_sum = max(max_sum, count)
            else:
                for remaining in range(increment, 0, -1):
                    if self._random.random() < _decay_probability(self.decay_lut, count):
                        bucket.counts[bucket.nonzero_minimum_index()] -= 1
                        count -= 1
                        if count == 0:
                            bucket.fingerprint = fp
                            count = remaining
                            bucket.counts[0] = remaining
                            max_sum = max(max_sum, count)
                            break
                bucket.counts_sum = count

        return self.heap.update(item, fp, max_sum)

    def query(self, item: str) -> bool:
        """Whether ``item`` is among the top K items."""
        return item in self.heap

    def __iter__(self) -> Iterator[Item]:
        """Iterate over the top K items (in heap order), skipping zero counts."""
        for entry in self.heap.items:
            if entry.count:
                yield entry

    def sorted_items(self) -> list[Item]:
        """Top K items sorted by descending count, then item; zero counts dropped."""
        ordered = sorted(
            (dataclasses.replace(entry) for entry in self.heap.items),
            key=lambda entry: (-entry.count, entry.item),
        )
        while ordered and ordered[-1].count == 0:
            ordered.pop()
        return ordered

    def reset(self) -> None:
        """Return the sketch to its empty state."""
        self.next_bucket_to_expire = 0
        for bucket in self.buckets:
            bucket.counts_sum = 0
            bucket.fingerprint = 0
            bucket.counts[:] = [0] * len(bucket.counts)
        self.heap.reset()