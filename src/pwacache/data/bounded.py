"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bounded, TTL-aware in-process data cache with FIFO eviction.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

from ..metrics import CacheMetrics, NoOpCacheMetrics
from ..settings import CacheSettings
from ..types import Clock
from .base import CacheEntry

logger = logging.getLogger("pwacache.data")

T = TypeVar("T")

_MISSING = object()


class DataCache(Generic[T]):
    """
    In-process key -> value store bounded to ``max_entries``.

    Entries expire ``ttl_s`` seconds after insertion and are dropped lazily
    when touched. Eviction order is first-insertion order, tracked in an
    explicit key queue; reads never reorder it.
    """

    def __init__(
        self,
        *,
        max_entries: int = 50,
        default_ttl_s: float = 300.0,
        clock: Clock | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be > 0")
        self.max_entries = max_entries
        self.default_ttl_s = default_ttl_s
        self._clock: Clock = clock or time.time
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._entries: dict[str, CacheEntry[T]] = {}
        self._order: deque[str] = deque()
        self._generation = 0
        self._disposed = False

    @classmethod
    def create(
        cls,
        settings: CacheSettings | None = None,
        *,
        clock: Clock | None = None,
        metrics: CacheMetrics | None = None,
    ) -> DataCache[T]:
        """Build a cache sized and timed from `settings` (defaults when omitted)."""
        settings = settings or CacheSettings()
        return cls(
            max_entries=settings.data_max_entries,
            default_ttl_s=settings.data_default_ttl_s,
            clock=clock,
            metrics=metrics,
        )

    def dispose(self) -> None:
        """Drop all entries and stop accepting writes."""
        self.clear()
        self._disposed = True

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def generation(self) -> int:
        """Bumped by every `clear()`; lets callers detect a wipe across an await."""
        return self._generation

    def __enter__(self) -> DataCache[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def lookup(self, key: str) -> CacheEntry[T] | None:
        """Return the fresh entry for `key`, discarding it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._metrics.incr("data_cache_miss_total")
            return None
        if entry.is_expired(self._clock()):
            self._discard(key)
            self._metrics.incr("data_cache_expired_total")
            self._metrics.incr("data_cache_miss_total")
            return None
        self._metrics.incr("data_cache_hit_total")
        return entry

    def get(self, key: str, default: T | None = None) -> T | None:
        entry = self.lookup(key)
        if entry is None:
            return default
        return entry.value

    def set(self, key: str, value: T, ttl_s: float | None = None) -> None:
        """
        Insert or overwrite `key`.

        A new key inserted at capacity evicts the oldest-inserted key first.
        Overwrites keep the key's original queue position.
        """
        if self._disposed:
            logger.debug("DataCache.set ignored after dispose (key=%s)", key)
            return
        ttl = self.default_ttl_s if ttl_s is None else ttl_s
        if key not in self._entries:
            while len(self._order) >= self.max_entries:
                evicted = self._order.popleft()
                self._entries.pop(evicted, None)
                self._metrics.incr("data_cache_evicted_total")
                logger.debug("DataCache evicted %s", evicted)
            self._order.append(key)
        self._entries[key] = CacheEntry(
            key=key, value=value, stored_at=self._clock(), ttl_s=ttl
        )

    def remove(self, key: str) -> bool:
        """Delete `key` unconditionally. Returns whether it was present."""
        return self._discard(key)

    def remove_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix`; returns the count removed."""
        doomed = [key for key in self._order if key.startswith(prefix)]
        for key in doomed:
            self._discard(key)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        self._order.clear()
        self._generation += 1

    def keys(self) -> list[str]:
        """Keys in eviction order (oldest first). May include expired entries."""
        return list(self._order)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.lookup(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def _discard(self, key: str) -> bool:
        if self._entries.pop(key, _MISSING) is _MISSING:
            return False
        self._order.remove(key)
        return True
