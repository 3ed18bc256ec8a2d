"""Hashing helpers: a pure XXH32 implementation, item fingerprints and bucket indices."""

from __future__ import annotations

import struct

__all__ = ["HASH_SEED", "xxh32", "fingerprint", "bucket_index"]

HASH_SEED = 4848280

_MASK = 0xFFFFFFFF
_P1 = 2654435761
_P2 = 2246822519
_P3 = 3266489917
_P4 = 668265263
_P5 = 374761393


def _rotl(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (32 - bits))) & _MASK


def _round(acc: int, lane: int) -> int:
    acc = (acc + lane * _P2) & _MASK
    return (_rotl(acc, 13) * _P1) & _MASK


def xxh32(data: bytes, seed: int = 0) -> int:
    """Return the 32-bit XXH32 digest of ``data`` with the given seed."""
    data = bytes(data)
    seed &= _MASK
    length = len(data)
    offset = 0

    if length >= 16:
        v1 = (seed + _P1 + _P2) & _MASK
        v2 = (seed + _P2) & _MASK
        v3 = seed
        v4 = (seed - _P1) & _MASK
        offset = length - length % 16
        for a, b, c, d in struct.iter_unpack("<4I", data[:offset]):
            v1 = _round(v1, a)
            v2 = _round(v2, b)
            v3 = _round(v3, c)
            v4 = _round(v4, d)
        h = (_rotl(v1, 1) + _rotl(v2, 7) + _rotl(v3, 12) + _rotl(v4, 18)) & _MASK
    else:
        h = (seed + _P5) & _MASK

    h = (h + length) & _MASK

    while offset + 4 <= length:
        lane = int.from_bytes(data[offset : offset + 4], "little")
        h = (h + lane * _P3) & _MASK
        h = (_rotl(h, 17) * _P4) & _MASK
        offset += 4

    for byte in data[offset:]:
        h = (h + byte * _P5) & _MASK
        h = (_rotl(h, 11) * _P1) & _MASK

    h ^= h >> 15
    h = (h * _P2) & _MASK
    h ^= h >> 13
    h = (h * _P3) & _MASK
    h ^= h >> 16
    return h


def fingerprint(item: str) -> int:
    """Return an item's 32-bit fingerprint."""
    return xxh32(item.encode("utf-8"), HASH_SEED)


def bucket_index(item: str, row: int, width: int) -> int:
    """Return the flat counter bucket index for ``item`` in ``row`` of a sketch."""
    if width < 1:
        raise ValueError(f"width must be positive, got {width}")
    column = xxh32(item.encode("utf-8"), row) % width
    return row * width + column