import random

import pytest

from topk.hashing import fingerprint
from topk.minheap import SIZEOF_UINT32, Item
from topk.sliding import SlidingBucket, SlidingSketch


def _item(name, count):
    return Item(fingerprint=fingerprint(name), item=name, count=count)


def test_default_parameters():
    sketch = SlidingSketch(10, 3)
    assert sketch.k == 10
    assert sketch.window_size == 3
    assert sketch.width > 0
    assert sketch.depth > 0
    assert sketch.decay == 0.9
    assert len(sketch.decay_lut) > 0
    assert sketch.bucket_history_length == 3


def test_default_parameters_clamp_low():
    sketch = SlidingSketch(10, 1, bucket_history_length=0, decay_lut_size=0)
    assert sketch.bucket_history_length == 1
    assert len(sketch.decay_lut) > 0


def test_default_parameters_clamp_high():
    sketch = SlidingSketch(10, 1, bucket_history_length=2)
    assert sketch.bucket_history_length == 1


def test_with_options():
    sketch = SlidingSketch(
        10, 3, depth=5, width=300, decay=0.8, decay_lut_size=1024, bucket_history_length=3
    )
    assert sketch.window_size == 3
    assert sketch.depth == 5
    assert sketch.bucket_history_length == 3
    assert sketch.width == 300
    assert sketch.decay == 0.8
    assert len(sketch.decay_lut) == 1024


def test_size_bytes():
    sketch = SlidingSketch(10, 10)
    size = sketch.size_bytes()
    assert size > 0
    assert size > sketch.width * sketch.depth * SIZEOF_UINT32 * (1 + sketch.bucket_history_length)


def test_size_bytes_grows_with_history():
    short = SlidingSketch(10, 10, bucket_history_length=2)
    long = SlidingSketch(10, 10, bucket_history_length=10)
    assert long.size_bytes() > short.size_bytes()


def test_top_k_simple():
    sketch = SlidingSketch(3, 10)
    sketch.add("X", 5)
    sketch.add("Y", 3)
    sketch.add("Z", 2)
    sketch.incr("Y")

    expected = [_item("X", 5), _item("Y", 4), _item("Z", 2)]
    assert sketch.sorted_items() == expected
    for entry in expected:
        assert sketch.query(entry.item)
        assert sketch.count(entry.item) == entry.count


def test_sliding_window_decay():
    sketch = SlidingSketch(2, 2)
    sketch.add("X", 3)
    sketch.add("Y", 2)
    sketch.add("Z", 1)
    assert sketch.sorted_items() == [_item("X", 3), _item("Y", 2)]

    sketch.ticks(0)
    sketch.tick()
    sketch.tick()

    sketch.add("Y", 2)
    sketch.add("Z", 3)
    assert sketch.sorted_items() == [_item("Z", 3), _item("Y", 2)]


def test_top_k_sliding():
    sketch = SlidingSketch(2, 2, width=10, depth=2, bucket_history_length=2)

    sketch.add("X", 3)
    sketch.add("Y", 2)
    sketch.add("Z", 1)
    assert sketch.sorted_items() == [_item("X", 3), _item("Y", 2)]
    sketch.tick()

    sketch.add("X", 2)
    sketch.add("Y", 2)
    sketch.add("Z", 1)
    assert sketch.sorted_items() == [_item("X", 5), _item("Y", 4)]
    sketch.tick()

    sketch.add("Y", 1)
    sketch.add("Z", 3)
    assert sketch.sorted_items() == [_item("Z", 4), _item("Y", 3)]
    sketch.tick()

    sketch.add("Y", 1)
    sketch.add("Z", 3)
    assert sketch.sorted_items() == [_item("Z", 6), _item("Y", 2)]

    sketch.tick()
    assert sketch.sorted_items() == [_item("Z", 3), _item("Y", 1)]

    sketch.tick()
    sketch.add("X", 1)
    assert sketch.sorted_items() == [_item("X", 1)]


def test_iter():
    sketch = SlidingSketch(3, 3)
    assert list(sketch) == []

    for i, name in enumerate(["item1", "item2", "item3", "item4"]):
        sketch.add(name, i)

    first = next(iter(sketch))
    assert first.item in {"item4", "item3", "item2"}

    assert {entry.item for entry in sketch} == {"item4", "item3", "item2"}


def test_reset():
    sketch = SlidingSketch(3, 3)
    sketch.incr("item1")
    sketch.incr("item2")
    sketch.reset()
    assert sketch.count("item1") == 0
    assert sketch.sorted_items() == []
    assert sketch.next_bucket_to_expire == 0


def test_error_bounds():
    rng = random.Random(1234)
    noise_items = 1000
    noise_frequency = [2000, 2000, 2000, 0, 0, 0]
    sketch = SlidingSketch(10, 3, width=256, depth=1, decay=0.9)

    cases = [
        ("high_freq", [500, 500, 500, 0, 0, 0], [500, 1000, 1500, 1000, 500, 0]),
        ("medium_freq", [100, 200, 300, 0, 0, 0], [100, 300, 600, 500, 300, 0]),
        ("low_freq", [50, 50, 100, 0, 0, 0], [50, 100, 200, 150, 100, 0]),
        ("lowest_freq", [50, 0, 0, 0, 0, 0], [50, 50, 50, 0, 0, 0]),
    ]

    for tick in range(6):
        sketch.tick()
        for name, increments, _ in cases:
            sketch.add(name, increments[tick])
        for _ in range(noise_frequency[tick]):
            sketch.incr(f"noise_item_{rng.randrange(noise_items)}")
        for name, _, totals in cases:
            assert sketch.count(name) <= totals[tick], (tick, name)


def test_collisions():
    sketch = SlidingSketch(3, 1, width=4, depth=1, decay=0.9)
    for name, count in [("a", 50), ("b", 40), ("c", 30)]:
        sketch.add(name, count)
    for i in range(10):
        sketch.add(f"n{i}", 1000)
    for name in ("a", "b", "c"):
        assert not sketch.query(name)


def test_bucket_tick_expires_oldest():
    bucket = SlidingBucket(fingerprint=1, counts=[4, 0, 3], first=0, counts_sum=7)
    bucket.tick()
    assert bucket.counts == [4, 0, 0]
    assert bucket.counts_sum == 4
    assert bucket.first == 2
    bucket.tick()
    assert bucket.first == 1
    assert bucket.counts_sum == 4


def test_bucket_tick_empty_is_noop():
    bucket = SlidingBucket(counts=[0, 0], first=1)
    bucket.tick()
    assert bucket.first == 1
    assert bucket.counts_sum == 0


@pytest.mark.parametrize(
    "counts, first, expected",
    [
        ([3, 1, 2], 0, 1),
        ([0, 0, 0], 1, 0),
        ([2, 5, 2], 2, 2),
        ([2, 5, 2], 0, 0),
        ([0, 4, 0], 2, 1),
    ],
)
def test_bucket_nonzero_minimum_index(counts, first, expected):
    bucket = SlidingBucket(counts=list(counts), first=first, counts_sum=sum(counts))
    assert bucket.nonzero_minimum_index() == expected


def test_ticks_zero_is_noop():
    sketch = SlidingSketch(2, 2)
    sketch.add("X", 3)
    sketch.ticks(0)
    assert sketch.next_bucket_to_expire == 0
    assert sketch.count("X") == 3


def test_full_window_expires_everything():
    sketch = SlidingSketch(2, 2)
    sketch.add("X", 3)
    sketch.ticks(2)
    assert sketch.count("X") == 0
    assert sketch.sorted_items() == []
    assert not sketch.query("X")


def test_invalid_arguments():
    with pytest.raises(ValueError):
        SlidingSketch(0, 2)
    with pytest.raises(ValueError):
        SlidingSketch(2, 0)
    with pytest.raises(ValueError):
        SlidingSketch(2, 2, width=0)
    sketch = SlidingSketch(2, 2)
    with pytest.raises(ValueError):
        sketch.add("X", -1)
    with pytest.raises(ValueError):
        sketch.ticks(-1)