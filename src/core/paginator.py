"""
Offset/limit pagination over a directory listing.
"""

import time
from dataclasses import dataclass
from typing import Any, List, Sequence

from .ordering import seeded_shuffle

DEFAULT_LIMIT = 120
MAX_LIMIT = 500

ORDER_RANDOM = "random"


@dataclass(frozen=True)
class Page:
    files: List[Any]
    total: int
    offset: int
    limit: int
    next_offset: int
    has_more: bool


def clamp_offset(raw) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(0, value)


def clamp_limit(raw, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if not value:
        value = default
    return max(1, min(maximum, value))


def order_files(files: Sequence[Any], order: str = "", seed: str = "") -> Sequence[Any]:
    """Apply the requested order; anything but "random" keeps the scan order."""
    if order != ORDER_RANDOM:
        return files
    if not seed:
        seed = str(int(time.time() * 1000))
    return seeded_shuffle(files, seed)


def paginate(items: Sequence[Any], offset: int, limit: int) -> Page:
    """
    Slice ``items[offset:offset + limit]``.

    An offset at or past the end is not an error: it yields an empty page
    with ``has_more`` False.
    """
    total = len(items)
    files = list(items[offset:offset + limit])
    next_offset = min(total, offset + len(files))
    return Page(
        files=files,
        total=total,
        offset=offset,
        limit=limit,
        next_offset=next_offset,
        has_more=next_offset < total,
    )
