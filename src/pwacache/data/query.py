"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache-wrapped async data fetches.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .bounded import DataCache
from .coalescing import RequestCoalescer

logger = logging.getLogger("pwacache.data")

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[T]]


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[T]):
    """Fetched value plus whether it was served without calling the fetcher."""

    data: T
    from_cache: bool


class CachedQuery:
    """
    Compose a `DataCache` with arbitrary async fetch operations.

    A fresh cached value short-circuits the fetcher. Otherwise the fetcher
    runs and its result is stored before being returned. Failures propagate
    unchanged and are never cached or retried here.
    """

    def __init__(self, cache: DataCache, *, coalesce: bool = True) -> None:
        self.cache = cache
        self._coalescer = RequestCoalescer() if coalesce else None

    async def fetch(
        self,
        key: str,
        fetcher: Fetcher[T],
        *,
        ttl_s: float | None = None,
        force_refresh: bool = False,
    ) -> T:
        result = await self.fetch_result(
            key, fetcher, ttl_s=ttl_s, force_refresh=force_refresh
        )
        return result.data

    async def fetch_result(
        self,
        key: str,
        fetcher: Fetcher[T],
        *,
        ttl_s: float | None = None,
        force_refresh: bool = False,
    ) -> QueryResult[T]:
        if not force_refresh:
            entry = self.cache.lookup(key)
            if entry is not None:
                return QueryResult(data=entry.value, from_cache=True)

        # A clear() while the fetch is in flight (sign-out, identity switch)
        # must neither receive nor store the result of the earlier identity.
        generation = self.cache.generation

        async def _load() -> T:
            try:
                value = await fetcher()
            except Exception as exc:
                logger.debug("Data fetch failed for %s: %s", key, exc)
                raise
            if self.cache.generation == generation:
                self.cache.set(key, value, ttl_s)
            else:
                logger.debug("Cache cleared during fetch of %s; result not stored", key)
            return value

        if self._coalescer is not None:
            value = await self._coalescer.run(f"{generation}|{key}", _load)
        else:
            value = await _load()
        return QueryResult(data=value, from_cache=False)

    def invalidate(self, key: str) -> bool:
        """Drop `key` after a mutation so the next fetch goes to the source."""
        return self.cache.remove(key)
