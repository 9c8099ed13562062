"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Offline asset cache: versioned snapshots behind a fetch interceptor.

Quick start::

    from pwacache.offline import HttpxNetworkTransport, InMemorySnapshotStore, OfflineWorker

    worker = OfflineWorker(
        store=InMemorySnapshotStore(),
        transport=HttpxNetworkTransport(
            upstream_url="https://shop.example.com/",
            scope_url="http://localhost:8000/",
        ),
    )
    await worker.start()
    response = await worker.submit(AssetRequest(url="./assets/app.js"))
"""

from .factory import create_snapshot_store, create_snapshot_store_from_env
from .manifest import ManifestReport, check_manifest
from .policy import RequestPolicy, Strategy
from .redis_store import RedisSnapshotStore
from .snapshot import InMemorySnapshotStore, SnapshotStore
from .transport import HttpxNetworkTransport, NetworkTransport
from .worker import (
    FetchEvent,
    LifecycleListener,
    OfflineWorker,
    WorkerLifecycleEvent,
    WorkerState,
)

__all__ = [
    "create_snapshot_store",
    "create_snapshot_store_from_env",
    "ManifestReport",
    "check_manifest",
    "RequestPolicy",
    "Strategy",
    "SnapshotStore",
    "InMemorySnapshotStore",
    "RedisSnapshotStore",
    "NetworkTransport",
    "HttpxNetworkTransport",
    "FetchEvent",
    "LifecycleListener",
    "OfflineWorker",
    "WorkerLifecycleEvent",
    "WorkerState",
]
