"""
Client Query Cache
==================
Keyed in-memory store for API responses on the client side.

Features:
- Freshness window (stale time) per entry, measured with an injectable clock
- Explicit invalidation
- Snapshot/restore for optimistic writes
- One lock per key so only one writer touches a key at a time
- LRU eviction that never drops an entry with a pending optimistic write

Keys are ``(entity_type, id)`` tuples:

    ("movies", "list")      all movies
    ("movie", 42)           movie detail
    ("reviews", 42)         reviews of movie 42

Usage:
    from moviecritic.client.cache import QueryCache, movie_key

    cache = QueryCache(stale_time=30)
    cache.set(movie_key(1), {"id": 1, "name": "Dune"})
    cache.state(movie_key(1))   # CacheState.FRESH
"""
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union
import copy
import logging
import threading
import time

from moviecritic import config

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Union[int, str]]

LIST = "list"


def movies_key() -> CacheKey:
    return ("movies", LIST)


def movie_key(movie_id: int) -> CacheKey:
    return ("movie", movie_id)


def reviews_key(movie_id: int) -> CacheKey:
    return ("reviews", movie_id)


class CacheState(str, Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    FRESH = "fresh"
    STALE = "stale"
    OPTIMISTIC_PENDING = "optimistic_pending"


@dataclass
class CacheEntry:
    data: Any = None
    state: CacheState = CacheState.EMPTY
    fresh_until: Optional[float] = None
    served_at: Optional[float] = None  # When the server last confirmed this data

    @property
    def has_data(self) -> bool:
        return self.served_at is not None


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0  # holders plus waiters; the lock is dropped at zero


@dataclass(frozen=True)
class Snapshot:
    """Last known-good copy of an entry; entry is None when the key was empty"""
    key: CacheKey
    entry: Optional[CacheEntry]


class QueryCache:
    """
    In-memory cache of server responses with freshness and optimistic writes.
    Each instance is independent; pass it explicitly to the functions that use it.
    """

    def __init__(
        self,
        stale_time: float = config.CACHE_STALE_TIME_SECONDS,
        max_size: int = config.CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache store.

        Args:
            stale_time: Seconds an entry stays fresh after the server served it
            max_size: Maximum number of entries (LRU eviction)
            clock: Returns the current time in seconds
        """
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._stale_time = stale_time
        self._max_size = max_size
        self._clock = clock
        self._entries_guard = threading.RLock()
        self._locks: Dict[CacheKey, _KeyLock] = {}
        self._locks_guard = threading.Lock()
        self._hits = 0
        self._misses = 0

    def now(self) -> float:
        return self._clock()

    # ==================== READS ====================

    def state(self, key: CacheKey) -> CacheState:
        """Current state of a key, with elapsed freshness windows reported as STALE."""
        entry = self._entries.get(key)
        if entry is None:
            return CacheState.EMPTY
        if entry.state == CacheState.FRESH and entry.fresh_until is not None and self.now() >= entry.fresh_until:
            return CacheState.STALE
        return entry.state

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def peek(self, key: CacheKey) -> Any:
        """Whatever data the key holds right now, provisional or not. Used for rendering."""
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def get(self, key: CacheKey) -> Optional[Any]:
        """
        Get data if the entry is fresh.

        Returns:
            Cached data, or None if missing, stale or mid-fetch
        """
        with self._entries_guard:
            if self.state(key) != CacheState.FRESH:
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return self._entries[key].data

    def is_fresh(self, key: CacheKey) -> bool:
        return self.state(key) == CacheState.FRESH

    # ==================== WRITES ====================

    def begin_fetch(self, key: CacheKey) -> None:
        """Mark a key as being fetched, keeping any stale data for display."""
        with self._entries_guard:
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = CacheEntry(state=CacheState.FETCHING)
            else:
                entry.state = CacheState.FETCHING

    def fetch_failed(self, key: CacheKey) -> None:
        """A first fetch leaves nothing behind; a refetch keeps the old data as stale."""
        with self._entries_guard:
            entry = self._entries.get(key)
            if entry is None:
                return
            if entry.has_data:
                entry.state = CacheState.STALE
            else:
                del self._entries[key]

    def set(self, key: CacheKey, data: Any) -> None:
        """
        Store server-confirmed data and start its freshness window.

        Args:
            key: Cache key
            data: Data as returned (or confirmed) by the server
        """
        now = self.now()
        with self._entries_guard:
            self._entries[key] = CacheEntry(
                data=data,
                state=CacheState.FRESH,
                fresh_until=now + self._stale_time,
                served_at=now,
            )
            self._entries.move_to_end(key)
            self._evict(keep=key)

    def invalidate(self, key: CacheKey) -> None:
        """Mark an entry stale so the next read refetches it."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.state = CacheState.STALE
            logger.debug(f"Invalidated cache key: {key}")

    def invalidate_type(self, entity_type: str) -> None:
        """Invalidate every key of one entity type, e.g. all ("reviews", *) entries."""
        with self._entries_guard:
            for key in list(self._entries):
                if key[0] == entity_type:
                    self.invalidate(key)

    def delete(self, key: CacheKey) -> None:
        """Delete a specific cache key."""
        with self._entries_guard:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear all cache."""
        with self._entries_guard:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Query cache cleared")

    # ==================== OPTIMISTIC WRITES ====================

    def snapshot(self, key: CacheKey) -> Snapshot:
        """Deep copy of an entry, taken before a speculative write."""
        entry = self._entries.get(key)
        if entry is None:
            return Snapshot(key=key, entry=None)
        return Snapshot(key=key, entry=replace(entry, data=copy.deepcopy(entry.data)))

    def apply_optimistic(self, key: CacheKey, update: Callable[[Any], Any]) -> bool:
        """
        Apply a provisional change to an entry that holds server data.

        Args:
            key: Cache key
            update: Receives a copy of the current data, returns the provisional data

        Returns:
            True if the entry was updated, False if there was nothing to update
        """
        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return False

        entry.data = update(copy.deepcopy(entry.data))
        entry.state = CacheState.OPTIMISTIC_PENDING
        return True

    def restore(self, snapshot: Snapshot) -> None:
        """Put back the snapshot's data exactly; the restored entry is stale."""
        with self._entries_guard:
            if snapshot.entry is None:
                self._entries.pop(snapshot.key, None)
                return

            self._entries[snapshot.key] = replace(
                snapshot.entry,
                data=copy.deepcopy(snapshot.entry.data),
                state=CacheState.STALE,
            )

    @contextmanager
    def locked(self, *keys: CacheKey) -> Iterator[None]:
        """
        Hold the locks of several keys.

        Locks are taken in a stable order so two writers with overlapping key
        sets queue behind each other instead of deadlocking. A key's lock only
        exists while someone holds or waits for it.
        """
        ordered = sorted(set(keys), key=repr)
        with self._locks_guard:
            key_locks = [self._locks.setdefault(key, _KeyLock()) for key in ordered]
            for key_lock in key_locks:
                key_lock.users += 1

        acquired = []
        try:
            for key_lock in key_locks:
                key_lock.lock.acquire()
                acquired.append(key_lock)
            yield
        finally:
            for key_lock in reversed(acquired):
                key_lock.lock.release()
            with self._locks_guard:
                for key, key_lock in zip(ordered, key_locks):
                    key_lock.users -= 1
                    if key_lock.users == 0:
                        del self._locks[key]

    def _evict(self, keep: Optional[CacheKey] = None) -> None:
        """Drop least recently used entries over max_size, skipping pending ones."""
        with self._entries_guard:
            for key in list(self._entries):
                if len(self._entries) <= self._max_size:
                    break
                if key == keep or self._entries[key].state == CacheState.OPTIMISTIC_PENDING:
                    continue
                del self._entries[key]
                logger.debug(f"Evicted cache key: {key}")

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        with self._entries_guard:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

            return {
                'size': len(self._entries),
                'max_size': self._max_size,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': f"{hit_rate:.2f}%",
                'pending': sum(1 for e in self._entries.values() if e.state == CacheState.OPTIMISTIC_PENDING),
                'locks': len(self._locks),
            }
