"""
Read-through fetching and the optimistic mutation protocol.

A mutation runs in three steps while holding the locks of every key it touches:

1. snapshot each dependent key
2. apply the provisional change so views can render it right away
3. run the server call, then commit the server's answer into each key,
   or restore every snapshot if the call failed

All functions take the cache explicitly.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
import logging
import uuid

from moviecritic import config
from moviecritic.client.cache import CacheKey, QueryCache

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "tmp-"


def temporary_id() -> str:
    """Client-side id for a record the server has not confirmed yet."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def is_temporary_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


# ==================== RECORD HELPERS ====================

def replace_record(records: List[Dict], match_id: Any, record: Dict) -> List[Dict]:
    """
    Swap the record with id ``match_id`` for ``record``.

    Any other copy of ``record`` (same id, e.g. from a refetch) is dropped so
    the list never holds duplicates. Appends if ``match_id`` is absent.
    """
    result = []
    replaced = False
    for item in records:
        if item.get("id") == match_id:
            if not replaced:
                result.append(record)
                replaced = True
        elif item.get("id") == record.get("id"):
            continue
        else:
            result.append(item)
    if not replaced:
        result.append(record)
    return result


def remove_record(records: List[Dict], record_id: Any) -> List[Dict]:
    return [item for item in records if item.get("id") != record_id]


def patch_record(records: List[Dict], record_id: Any, fields: Dict) -> List[Dict]:
    return [dict(item, **fields) if item.get("id") == record_id else item for item in records]


def provisional_average(reviews: Iterable[Dict]) -> Optional[float]:
    """Client-side estimate of a movie's average, same rounding as the server."""
    ratings = [float(review["rating"]) for review in reviews]
    if not ratings:
        return None
    return round(sum(ratings) / len(ratings), config.RATING_PRECISION)


# ==================== PROTOCOL ====================

@dataclass
class OptimisticUpdate:
    """
    Provisional change for one cache key.

    apply:     current data -> provisional data
    reconcile: (provisional data, server result) -> confirmed data;
               None means just invalidate the key once the server confirms
    """
    key: CacheKey
    apply: Callable[[Any], Any]
    reconcile: Optional[Callable[[Any, Any], Any]] = None


def fetch_query(cache: QueryCache, key: CacheKey, fetcher: Callable[[], Any], force: bool = False) -> Any:
    """
    Return fresh data for a key, calling ``fetcher`` when it is empty or stale.

    Waits for any pending optimistic write on the key before reading, so a
    fetch never overwrites provisional data.
    """
    with cache.locked(key):
        if not force and cache.is_fresh(key):
            return cache.get(key)

        cache.begin_fetch(key)
        try:
            data = fetcher()
        except Exception:
            cache.fetch_failed(key)
            raise

        cache.set(key, data)
        return data


def run_optimistic_mutation(
    cache: QueryCache,
    updates: Sequence[OptimisticUpdate],
    mutate: Callable[[], Any],
    invalidate: Sequence[CacheKey] = (),
    remove: Sequence[CacheKey] = (),
) -> Any:
    """
    Apply a mutation optimistically and reconcile it with the server.

    Args:
        cache: The query cache
        updates: Provisional changes, applied in order
        mutate: Performs the server call and returns its result
        invalidate: Keys to mark stale once the server confirms
        remove: Keys to drop once the server confirms

    Returns:
        The server result

    Raises:
        Whatever ``mutate`` raised, after every touched key has been restored
    """
    keys = [update.key for update in updates] + list(invalidate) + list(remove)

    with cache.locked(*keys):
        snapshots = [cache.snapshot(update.key) for update in updates]
        applied = [update for update in updates if cache.apply_optimistic(update.key, update.apply)]

        try:
            result = mutate()
        except Exception:
            for snapshot in snapshots:
                cache.restore(snapshot)
            logger.info(f"Rolled back optimistic update of {len(applied)} cache key(s)")
            raise

        for update in applied:
            entry = cache.entry(update.key)
            if entry is None or not entry.has_data:
                # Dropped while the request was in flight; next read refetches
                continue
            if update.reconcile is None:
                cache.invalidate(update.key)
            else:
                cache.set(update.key, update.reconcile(cache.peek(update.key), result))
        for key in invalidate:
            cache.invalidate(key)
        for key in remove:
            cache.delete(key)

        return result
