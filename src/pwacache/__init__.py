"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

pwacache: offline asset cache and application data cache.
"""

from __future__ import annotations

from .data import CachedQuery, CacheEntry, DataCache, IdentityScope, QueryResult, cache_key
from .errors import (
    CacheConfigurationError,
    NetworkError,
    PwaCacheError,
    SnapshotStoreError,
    WorkerLifecycleError,
)
from .metrics import CacheMetrics, NoOpCacheMetrics, PrometheusCacheMetrics
from .offline import (
    HttpxNetworkTransport,
    InMemorySnapshotStore,
    NetworkTransport,
    OfflineWorker,
    RedisSnapshotStore,
    RequestPolicy,
    SnapshotStore,
    WorkerLifecycleEvent,
    check_manifest,
    create_snapshot_store,
    create_snapshot_store_from_env,
)
from .settings import CacheSettings
from .types import AssetRequest, AssetResponse

__all__ = [
    "AssetRequest",
    "AssetResponse",
    "CacheSettings",
    "CacheEntry",
    "cache_key",
    "DataCache",
    "CachedQuery",
    "QueryResult",
    "IdentityScope",
    "PwaCacheError",
    "CacheConfigurationError",
    "NetworkError",
    "SnapshotStoreError",
    "WorkerLifecycleError",
    "CacheMetrics",
    "NoOpCacheMetrics",
    "PrometheusCacheMetrics",
    "OfflineWorker",
    "WorkerLifecycleEvent",
    "RequestPolicy",
    "SnapshotStore",
    "InMemorySnapshotStore",
    "RedisSnapshotStore",
    "NetworkTransport",
    "HttpxNetworkTransport",
    "check_manifest",
    "create_snapshot_store",
    "create_snapshot_store_from_env",
]
