"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for selecting snapshot store backends.
"""

from __future__ import annotations

from typing import Any

from ..errors import CacheConfigurationError
from ..settings import CacheSettings
from .snapshot import InMemorySnapshotStore, SnapshotStore


def create_snapshot_store(
    settings: CacheSettings,
    *,
    redis_client: Any | None = None,
) -> SnapshotStore:
    """
    Create a snapshot store for `settings.snapshot_backend`.

    Backends:
    - `inmemory` (default)
    - `redis`: uses `redis_client` when supplied, otherwise builds one from
      `settings.redis_url`.
    """
    backend = settings.snapshot_backend.strip().lower()

    if backend in ("mem", "memory", "inmemory", "in_memory"):
        return InMemorySnapshotStore()

    if backend in ("redis",):
        from .redis_store import RedisSnapshotStore

        client = redis_client
        if client is None:
            if not settings.redis_url:
                raise CacheConfigurationError(
                    "PWACACHE_REDIS_URL is required for the redis snapshot backend"
                )
            from redis.asyncio import Redis

            client = Redis.from_url(settings.redis_url)
        return RedisSnapshotStore(client, prefix=settings.redis_prefix)

    raise CacheConfigurationError(
        f"Unknown PWACACHE_SNAPSHOT_BACKEND '{settings.snapshot_backend}'"
    )


def create_snapshot_store_from_env(*, redis_client: Any | None = None) -> SnapshotStore:
    """Create a snapshot store from `PWACACHE_*` environment variables."""
    return create_snapshot_store(CacheSettings.from_env(), redis_client=redis_client)
