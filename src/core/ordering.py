"""
Deterministic "random" ordering for paginated browsing.

The client mints one seed per browsing session and sends it with every page
request, so each page is cut from the same permutation.
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
MASK_32 = 0xFFFFFFFF


def hash_to_int(text: str) -> int:
    """32-bit FNV-1a over the UTF-16 code units of *text*."""
    data = text.encode("utf-16-le", "surrogatepass")
    h = FNV_OFFSET_BASIS
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * FNV_PRIME) & MASK_32
    return h


def seeded_shuffle(items: Sequence[T], seed: str) -> List[T]:
    """Return a new list with *items* permuted by a generator seeded from *seed*."""
    out = list(items)
    state = hash_to_int(seed or "0")
    for i in range(len(out) - 1, 0, -1):
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & MASK_32
        j = state % (i + 1)
        out[i], out[j] = out[j], out[i]
    return out
