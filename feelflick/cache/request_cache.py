"""
In-memory recommendation cache with in-flight request deduplication.

Two tables live on one event loop:

* entries: key -> (value, expires_at), evicted lazily on read after expiry;
* in_flight: key -> asyncio.Task for a fetch that is already running.

get_or_fetch checks both tables and registers a new in-flight task without any
await in between, so N concurrent callers for one key share a single fetch.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from feelflick.cache.metrics import CacheMetrics
from feelflick.core.constants import (
    CACHE_EVENT_DEDUP,
    CACHE_EVENT_EVICTED,
    CACHE_EVENT_EXPIRED,
    CACHE_EVENT_FETCH_FAILED,
    CACHE_EVENT_FETCH_STARTED,
    CACHE_EVENT_HIT,
    CACHE_EVENT_MISS,
    CACHE_NAME_RECOMMENDATIONS,
    DEFAULT_CACHE_TTL_SECONDS,
)
from feelflick.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Any]]


def _to_json(name: str, value: Any) -> str:
    # compact separators so keys match the ones built by the web client
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Cache key parameter {name!r} is not JSON serializable: {e}") from e


def _sort_key(item: Any) -> tuple[str, Any]:
    # type name first: True and 1 compare equal but must not tie
    return type(item).__name__, item


def _canonical_value(name: str, value: Any) -> Any:
    if isinstance(value, Mapping):
        raise ValidationError(f"Cache key parameter {name!r} must not be a mapping")
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        for item in items:
            if isinstance(item, (Mapping, list, tuple, set, frozenset)):
                raise ValidationError(f"Cache key parameter {name!r} must be a flat list")
            _to_json(name, item)
        return sorted(items, key=_sort_key)
    return value


def build_cache_key(entity_type: str, user_id: Optional[str], params: Mapping[str, Any] | None = None) -> str:
    """
    Build the canonical key ``"{type}:{user_id}:{name}:{json}|{name}:{json}..."``.

    Parameter names are sorted and list values have their elements sorted, so the
    same logical request always maps to the same key.
    """
    parts = []
    for name in sorted(params or {}):
        parts.append(f"{name}:{_to_json(name, _canonical_value(name, params[name]))}")
    user_part = "null" if user_id is None else str(user_id)
    return f"{entity_type}:{user_part}:{'|'.join(parts)}"


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class RequestCache:
    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: CacheMetrics | None = None,
        name: str = CACHE_NAME_RECOMMENDATIONS,
    ) -> None:
        self.default_ttl = default_ttl
        self.name = name
        self.metrics = metrics or CacheMetrics(name)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task] = {}

    # -------------------------
    # Keys
    # -------------------------

    @staticmethod
    def key(entity_type: str, user_id: Optional[str], params: Mapping[str, Any] | None = None) -> str:
        return build_cache_key(entity_type, user_id, params)

    # -------------------------
    # Plain TTL map
    # -------------------------

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            self.metrics.record(CACHE_EVENT_EXPIRED)
            self._update_sizes()
            logger.debug("Cache expired: %s", key)
            return None
        return entry

    def get(self, key: str) -> Any:
        """Cached value if present and fresh, otherwise None (stale entries are evicted)."""
        entry = self._lookup(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        self._update_sizes()

    # -------------------------
    # Fetch with dedup
    # -------------------------

    async def get_or_fetch(self, key: str, fetch_fn: FetchFn, ttl: float | None = None) -> Any:
        """
        Return the cached value for key, or fetch it once for all concurrent callers.

        Args:
            key: Cache key (see build_cache_key)
            fetch_fn: Zero-argument coroutine function doing the remote call
            ttl: Seconds to keep the value (defaults to the cache TTL)

        Returns:
            The cached or freshly fetched value

        Raises:
            Whatever fetch_fn raises; failures are never cached.
        """
        entry = self._lookup(key)
        if entry is not None:
            self.metrics.record(CACHE_EVENT_HIT)
            logger.debug("Cache hit: %s", key)
            return entry.value

        task = self._in_flight.get(key)
        if task is not None:
            self.metrics.record(CACHE_EVENT_DEDUP)
            logger.debug("Joining in-flight fetch: %s", key)
        else:
            self.metrics.record(CACHE_EVENT_MISS)
            self.metrics.record(CACHE_EVENT_FETCH_STARTED)
            logger.debug("Cache miss, fetching: %s", key)
            task = asyncio.ensure_future(self._fetch(key, fetch_fn, ttl))
            task.add_done_callback(_mark_retrieved)
            self._in_flight[key] = task
            self._update_sizes()

        # a cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(task)

    async def _fetch(self, key: str, fetch_fn: FetchFn, ttl: float | None) -> Any:
        task = asyncio.current_task()
        try:
            value = await fetch_fn()
        except Exception as e:
            self.metrics.record(CACHE_EVENT_FETCH_FAILED)
            logger.warning("Fetch failed for %s: %r", key, e)
            raise
        else:
            # invalidated while running: hand the value to awaiters, do not store it
            if self._in_flight.get(key) is task:
                self.set(key, value, ttl)
            return value
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]
                self._update_sizes()

    # -------------------------
    # Invalidation
    # -------------------------

    def invalidate(self, key: str) -> None:
        removed = self._entries.pop(key, None) is not None
        removed = self._in_flight.pop(key, None) is not None or removed
        if removed:
            self.metrics.record(CACHE_EVENT_EVICTED)
            self._update_sizes()

    def invalidate_user(self, user_id: str) -> int:
        """
        Drop every cached and in-flight key containing user_id.

        This is a substring sweep, so a user id that appears inside another key's
        parameter values evicts that key too.
        """
        needle = str(user_id)
        keys = {k for k in self._entries if needle in k} | {k for k in self._in_flight if needle in k}
        for k in keys:
            self._entries.pop(k, None)
            self._in_flight.pop(k, None)
        if keys:
            self.metrics.record(CACHE_EVENT_EVICTED, len(keys))
            self._update_sizes()
            logger.info("Invalidated %d cache keys for user %s", len(keys), needle)
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
        self._in_flight.clear()
        self._update_sizes()

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "keys": list(self._entries),
            "in_flight": list(self._in_flight),
        }

    def _update_sizes(self) -> None:
        self.metrics.set_sizes(len(self._entries), len(self._in_flight))


def _mark_retrieved(task: asyncio.Task) -> None:
    # failures are logged in _fetch and re-raised to awaiters; this only keeps
    # asyncio quiet when every awaiter was cancelled before the fetch settled
    if not task.cancelled():
        task.exception()
