"""
Short-lived cache of directory listings.

The cache is an optimisation only. Every failure of the backing store is
logged and treated as a miss, so callers always fall back to the scanner.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import redis
from redis.exceptions import RedisError

from .scanner import DirectoryListing, normalize_dir_key

logger = logging.getLogger(__name__)

KEY_PREFIX = "ig:images:v2:"
DEFAULT_TTL_SECONDS = 30


def cache_key(dir_key: str) -> str:
    return KEY_PREFIX + dir_key


def ancestor_chain(dir_key: str) -> List[str]:
    """Keys from the root down to *dir_key*: "a/b" -> ["", "a", "a/b"]."""
    chain = [""]
    cur = ""
    for part in normalize_dir_key(dir_key).split("/"):
        if not part:
            continue
        cur = f"{cur}/{part}" if cur else part
        chain.append(cur)
    return chain


class ListingStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, *keys: str) -> None: ...


@dataclass
class _Entry:
    value: str
    expires_at: float


class MemoryListingStore:
    """In-process TTL store, thread-safe."""

    def __init__(self):
        self._data: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if time.monotonic() >= entry.expires_at:
                del self._data[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = _Entry(value, time.monotonic() + ttl_seconds)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class RedisListingStore:
    """Redis-backed store. Errors are logged and degrade to a miss."""

    def __init__(self, url: str = None, client=None):
        if client is None:
            client = redis.Redis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        self._client = client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except RedisError as exc:
            logger.warning("redis get %s failed: %s", key, exc)
            return None
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            logger.warning("redis set %s failed: %s", key, exc)

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            self._client.delete(*keys)
        except RedisError as exc:
            logger.warning("redis delete failed: %s", exc)


class ListingCache:
    """
    Read-through listing cache keyed by directory key.

    Parameters
    ----------
    store : ListingStore or None
        Backing key/value store. ``None`` disables caching: every ``get`` misses.
    ttl_seconds : int
        Expiry for entries; bounds staleness from edits made outside the app.
    """

    def __init__(self, store: Optional[ListingStore] = None,
                 ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def get(self, dir_key: str) -> Optional[DirectoryListing]:
        if self.store is None:
            return None
        raw = self.store.get(cache_key(normalize_dir_key(dir_key)))
        if not raw:
            return None
        try:
            return DirectoryListing.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding corrupt cache entry for %r: %s", dir_key, exc)
            return None

    def set(self, dir_key: str, listing: DirectoryListing) -> None:
        if self.store is None:
            return
        payload = json.dumps(listing.to_dict(), ensure_ascii=False)
        self.store.set(cache_key(normalize_dir_key(dir_key)), payload, self.ttl_seconds)

    def invalidate(self, dir_key: str) -> None:
        """Drop the entries for *dir_key* and every ancestor up to the root."""
        if self.store is None:
            return
        keys = [cache_key(k) for k in ancestor_chain(dir_key)]
        self.store.delete(*keys)
        logger.debug("Invalidated %d listing(s) for %r", len(keys), dir_key)


def create_store(backend: str, redis_url: str = "") -> Optional[ListingStore]:
    """Build the store named by *backend* ("none", "memory" or "redis")."""
    if backend == "memory":
        return MemoryListingStore()
    if backend == "redis":
        if not redis_url:
            logger.warning("CACHE_BACKEND=redis but REDIS_URL is empty; listing cache disabled")
            return None
        logger.info("Listing cache: redis at %s", redis_url)
        return RedisListingStore(redis_url)
    return None
