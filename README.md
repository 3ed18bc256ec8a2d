# topk

Approximate top-k tracking for data streams, built on the HeavyKeeper
sketch. Two sketches are provided:

- `topk.sketch.Sketch` counts items over the whole stream.
- `topk.sliding.SlidingSketch` counts items over a sliding window of
  ticks, so old counts age out as time advances.

Both keep a min-heap of at most `k` items holding the current top items.
Counts are estimates: when items collide in a counter, the counter is
decremented with a probability that falls as the count grows, so a count
can come out smaller than the true count but never larger. The decay is
random, so results on heavily colliding data vary from run to run.

The package is a library only; it has no command-line program and does not
store sketches anywhere. Every sketch keeps its state in memory, in plain
public attributes (`buckets`, `heap`, `decay_lut` and so on).

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Counting over the whole stream

```python
from topk.sketch import Sketch

sketch = Sketch(3)
for word in "a b a c a b d".split():
    sketch.incr(word)
sketch.add("e", 10)

sketch.count("a")      # estimated count of "a"
sketch.query("e")      # True if "e" is among the top 3
for entry in sketch.sorted_items():
    print(entry.item, entry.count)
```

- `incr(item)` and `add(item, increment)` count an item and return whether
  it is now in the top `k`. `increment` must be between 0 and 2**32 - 1,
  otherwise `ValueError` is raised.
- `count(item)` returns the heap's count for an item in the top `k`, and
  otherwise the largest counter in its rows that carries its fingerprint
  (0 if none does).
- `sorted_items()` returns copies of the top items ordered by count,
  highest first, with ties broken by item name; items with a zero count are
  left out.
- Iterating over the sketch yields the heap's own `Item` entries with
  non-zero counts, in heap order.
- `reset()` empties the sketch, and `size_bytes()` gives an estimate of its
  memory footprint.

### Parameters

`Sketch(k, depth=None, width=None, decay=None, decay_lut_size=None)`

- `depth`: number of hash rows; defaults to `max(3, int(log(k)))`.
- `width`: counters per row; defaults to `max(256, int(k * log(k)))`.
- `decay`: defaults to 0.9. A counter holding `i` is decremented on a
  collision with probability `decay ** i`.
- `decay_lut_size`: size of the table of precomputed powers of `decay`;
  `None` or 0 means 256. Counts beyond the table are handled by combining
  table entries.

`k`, `depth` and `width` must be positive and `decay_lut_size` must not be
negative; otherwise `ValueError` is raised.

## Counting over a sliding window

```python
from topk.sliding import SlidingSketch

sketch = SlidingSketch(2, window_size=2)
sketch.add("X", 3)
sketch.add("Y", 2)
sketch.tick()
sketch.tick()          # the counts from two ticks ago have now expired
sketch.add("Z", 3)
[(e.item, e.count) for e in sketch.sorted_items()]   # [("Z", 3)]
```

`tick()` advances time by one unit and `ticks(n)` by `n` units (`ticks(0)`
does nothing, a negative `n` raises `ValueError`). Each call ages a share
of the buckets in turn, then recounts the heap's items from their buckets
and drops those whose count has fallen to zero.

`SlidingSketch(k, window_size, depth=None, width=None, decay=None,
decay_lut_size=None, bucket_history_length=None)` takes the same
parameters as `Sketch` with the same defaults, plus:

- `window_size`: the window length in ticks; must be positive.
- `bucket_history_length`: the number of aged counters kept per bucket. It
  defaults to `window_size` and is held between 1 and `window_size`. With
  fewer counters than ticks in the window, several ticks share one counter
  and aging becomes less precise.

It offers the same `incr`, `add`, `count`, `query`, `sorted_items`,
iteration, `reset` and `size_bytes` as `Sketch`; counts are those within
the current window.

## Lower-level pieces

- `topk.minheap.MinHeap(k)` is the bounded min-heap of
  `Item(fingerprint, item, count)` entries that both sketches use, ordered
  by count and then by item name. `update(item, fingerprint, count)` adds
  or updates an item, evicting the smallest when the heap is full, and
  ignores counts below the minimum of a full heap. It also has `find`,
  `get`, `min`, `full`, `reinit`, `reset`, `size_bytes`, `len()` and `in`.
- `topk.hashing` provides `xxh32(data, seed=0)`, a pure-Python XXH32
  digest; `fingerprint(item)`, an item's 32-bit fingerprint; and
  `bucket_index(item, row, width)`, the flat counter index of an item in a
  row (raising `ValueError` if `width` is not positive).