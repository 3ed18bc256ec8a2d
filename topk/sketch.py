"""HeavyKeeper top-k sketch with probabilistic counter decay on collisions."""

from __future__ import annotations

import dataclasses
import math
import random
import struct
from dataclasses import dataclass
from typing import Iterator, Optional

from topk.hashing import bucket_index, fingerprint
from topk.minheap import SIZEOF_FLOAT32, Item, MinHeap

__all__ = [
    "Bucket",
    "Sketch",
    "DEFAULT_DECAY",
    "DEFAULT_DECAY_LUT_SIZE",
    "SIZEOF_SKETCH_STRUCT",
    "SIZEOF_BUCKET_STRUCT",
]

DEFAULT_DECAY = 0.9
DEFAULT_DECAY_LUT_SIZE = 256

# Memory footprints (in bytes) of the underlying 64-bit layout, used for size estimates.
SIZEOF_SKETCH_STRUCT = 88
SIZEOF_BUCKET_STRUCT = 8

_UINT32_MAX = 0xFFFFFFFF
_FLOAT32 = struct.Struct("<f")


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return _FLOAT32.unpack(_FLOAT32.pack(value))[0]


def _default_dimensions(k: int) -> tuple[int, int]:
    """Default (depth, width) for a sketch tracking ``k`` items."""
    log_k = math.log(k)
    return max(3, int(log_k)), max(256, int(k * log_k))


def _decay_table(decay: float, size: int) -> list[float]:
    base = _f32(decay)
    return [_f32(math.pow(base, i)) for i in range(size)]


def _decay_probability(lut: list[float], count: int) -> float:
    """Probability that a counter holding ``count`` is decremented on collision."""
    size = len(lut)
    if count < size:
        return lut[count]
    last = size - 1
    return _f32(_f32(math.pow(lut[last], count // last)) * lut[count % last])


@dataclass
class Bucket:
    """A single sketch counter with the fingerprint of the item it counts."""

    fingerprint: int = 0
    count: int = 0


class Sketch:
    """Top-k sketch: ``depth`` rows of ``width`` decaying counters plus a top-K min-heap.

    Defaults: depth ``max(3, log(k))``, width ``max(256, k*log(k))``,
    decay 0.9 and a decay look-up table of 256 entries.
    """

    def __init__(
        self,
        k: int,
        depth: Optional[int] = None,
        width: Optional[int] = None,
        decay: Optional[float] = None,
        decay_lut_size: Optional[int] = None,
    ) -> None:
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")
        default_depth, default_width = _default_dimensions(k)
        self.k = k
        self.depth = default_depth if depth is None else depth
        self.width = default_width if width is None else width
        self.decay = DEFAULT_DECAY if decay is None else decay
        if self.depth < 1:
            raise ValueError(f"depth must be positive, got {self.depth}")
        if self.width < 1:
            raise ValueError(f"width must be positive, got {self.width}")
        lut_size = decay_lut_size if decay_lut_size else DEFAULT_DECAY_LUT_SIZE
        if lut_size < 0:
            raise ValueError(f"decay_lut_size must not be negative, got {lut_size}")
        self.decay_lut: list[float] = _decay_table(self.decay, lut_size)
        self.buckets: list[Bucket] = [Bucket() for _ in range(self.width * self.depth)]
        self.heap = MinHeap(self.k)
        self._random = random.Random()

    def size_bytes(self) -> int:
        """Estimated size of the sketch in bytes."""
        buckets_size = SIZEOF_BUCKET_STRUCT * len(self.buckets)
        decay_table_size = len(self.decay_lut) * SIZEOF_FLOAT32
        return SIZEOF_SKETCH_STRUCT + buckets_size + self.heap.size_bytes() + decay_table_size

    def _rows(self, item: str) -> Iterator[Bucket]:
        for row in range(self.depth):
            yield self.buckets[bucket_index(item, row, self.width)]

    def count(self, item: str) -> int:
        """Estimated count of ``item``."""
        entry = self.heap.get(item)
        if entry is not None and entry.item == item:
            return entry.count

        fp = fingerprint(item)
        return max(
            (bucket.count for bucket in self._rows(item) if bucket.fingerprint == fp),
            default=0,
        )

    def incr(self, item: str) -> bool:
        """Count a single instance of ``item``; return whether it is in the top K."""
        return self.add(item, 1)

    def add(self, item: str, increment: int) -> bool:
        """Add ``increment`` to ``item``'s count; return whether it is in the top K."""
        if not 0 <= increment <= _UINT32_MAX:
            raise ValueError(f"increment must be an unsigned 32-bit value, got {increment}")
        fp = fingerprint(item)
        max_count = 0

        for bucket in self._rows(item):
            count = bucket.count
            if count == 0:
                bucket.fingerprint = fp
                bucket.count = increment
                max_count = max(max_count, increment)
            elif bucket.fingerprint == fp:
                count = (count + increment) & _UINT32_MAX
                bucket.count = count
                max_count = max(max_count, count)
            else:
                for remaining in range(increment, 0, -1):
                    if self._random.random() < _decay_probability(self.decay_lut, count):
                        count -= 1
                        if count == 0:
                            bucket.fingerprint = fp
                            count = remaining
                            max_count = max(max_count, count)
                            break
                bucket.count = count

        return self.heap.update(item, fp, max_count)

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
        for bucket in self.buckets:
            bucket.fingerprint = 0
            bucket.count = 0
        self.heap.reset()