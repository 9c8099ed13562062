"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Offline worker: versioned asset snapshot plus a per-request fetch policy.

The worker is an explicit state machine::

    new -> installing -> installed -> activating -> active -> redundant

Installing seeds the current snapshot with the shell manifest. Activating
purges every other snapshot version and claims clients, which starts the
consumer loop over queued fetch events. Fetch events submitted before
activation wait in the queue until then.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from ..errors import WorkerLifecycleError
from ..metrics import CacheMetrics, NoOpCacheMetrics
from ..settings import CacheSettings
from ..types import AssetRequest, AssetResponse
from .policy import RequestPolicy
from .snapshot import SnapshotStore
from .transport import NetworkTransport

logger = logging.getLogger("pwacache.offline")

WorkerState = Literal["new", "installing", "installed", "activating", "active", "redundant"]

_TRANSITIONS: dict[str, frozenset[str]] = {
    "new": frozenset({"installing", "redundant"}),
    "installing": frozenset({"installed", "redundant"}),
    "installed": frozenset({"activating", "redundant"}),
    "activating": frozenset({"active", "redundant"}),
    "active": frozenset({"redundant"}),
    "redundant": frozenset(),
}


@dataclass(frozen=True, slots=True)
class WorkerLifecycleEvent:
    """State change notification delivered to lifecycle listeners."""

    state: WorkerState
    version: str
    purged_versions: tuple[str, ...] = ()

    @property
    def update_available(self) -> bool:
        """True when activation replaced an older snapshot version."""
        return self.state == "active" and bool(self.purged_versions)


@dataclass(slots=True)
class FetchEvent:
    """One queued request and the future its response is delivered on."""

    request: AssetRequest
    future: asyncio.Future[AssetResponse]
    received_at: float


LifecycleListener = Callable[[WorkerLifecycleEvent], Awaitable[None] | None]


class OfflineWorker:
    """
    Fetch interceptor over a `SnapshotStore` and a `NetworkTransport`.

    Policy per request (first match wins):
    - non-GET and backend API requests pass straight to the network
    - navigations are network-first, falling back to cached shell entries
    - everything else is stale-while-revalidate

    Cache paths never raise: store read faults count as misses, write faults
    and background refresh faults are logged. Pass-through requests surface
    network errors exactly as the transport raises them.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        transport: NetworkTransport,
        settings: CacheSettings | None = None,
        policy: RequestPolicy | None = None,
        metrics: CacheMetrics | None = None,
        listeners: list[LifecycleListener] | None = None,
    ) -> None:
        self.settings = settings or CacheSettings()
        self.policy = policy or RequestPolicy.from_settings(self.settings)
        self._store = store
        self._transport = transport
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._listeners = list(listeners or [])

        self._state: WorkerState = "new"
        self._events: asyncio.Queue[FetchEvent] = asyncio.Queue()
        self._loop_task: asyncio.Task[None] | None = None
        self._active_tasks: set[asyncio.Task[Any]] = set()
        self._refreshes: set[asyncio.Task[AssetResponse | None]] = set()

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def version(self) -> str:
        return self.settings.snapshot_version

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def transport(self) -> NetworkTransport:
        return self._transport

    @property
    def pending_refreshes(self) -> int:
        return len(self._refreshes)

    @property
    def queued_events(self) -> int:
        return self._events.qsize()

    def add_listener(self, listener: LifecycleListener) -> None:
        self._listeners.append(listener)

    async def _transition(
        self, state: WorkerState, *, purged: tuple[str, ...] = ()
    ) -> None:
        if state not in _TRANSITIONS[self._state]:
            raise WorkerLifecycleError(
                f"Illegal worker transition {self._state} -> {state}"
            )
        self._state = state
        event = WorkerLifecycleEvent(state=state, version=self.version, purged_versions=purged)
        for listener in self._listeners:
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:  # noqa: BLE001
                logger.exception("Lifecycle listener failed on %s", state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def install(self) -> None:
        """Open the current snapshot and seed it with the shell manifest."""
        await self._transition("installing")
        logger.info("Installing offline worker (version=%s)", self.version)
        try:
            await self._store.open(self.version)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to open snapshot %s", self.version)

        keys = self.policy.keys_for(self.settings.shell_assets)
        seeded = await asyncio.gather(*(self._seed(key) for key in keys))
        logger.info(
            "Seeded %d/%d shell assets into %s", sum(seeded), len(keys), self.version
        )
        await self._transition("installed")

    async def _seed(self, key: str) -> bool:
        try:
            response = await self._transport.fetch(AssetRequest(url=key))
            if not response.ok:
                logger.warning(
                    "Shell asset %s returned HTTP %d; not cached", key, response.status
                )
                self._metrics.incr("offline_seed_failed_total")
                return False
            await self._store.put(self.version, key, response)
            return True
        except Exception:  # noqa: BLE001
            self._metrics.incr("offline_seed_failed_total")
            logger.exception("Failed to seed shell asset %s", key)
            return False

    async def activate(self) -> tuple[str, ...]:
        """Purge every snapshot except the current one, then claim clients."""
        await self._transition("activating")
        logger.info("Activating offline worker (version=%s)", self.version)
        purged: list[str] = []
        try:
            names = await self._store.names()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to enumerate snapshots during activation")
            names = []

        for name in names:
            if name == self.version:
                continue
            try:
                if await self._store.delete(name):
                    logger.info("Deleted old snapshot %s", name)
                    purged.append(name)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to delete old snapshot %s", name)

        self._claim()
        await self._transition("active", purged=tuple(purged))
        return tuple(purged)

    def _claim(self) -> None:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._loop())

    async def start(self) -> None:
        """Install, and activate straight away when `skip_waiting` is set."""
        if self._state != "new":
            raise WorkerLifecycleError(f"Worker already started (state={self._state})")
        await self.install()
        if self.settings.skip_waiting:
            await self.activate()

    async def shutdown(self, *, timeout_s: float | None = None) -> None:
        """
        Stop consuming events and retire the worker.

        In-flight handlers and background refreshes get up to `timeout_s`
        (default `settings.shutdown_timeout_s`) to finish.
        """
        timeout = self.settings.shutdown_timeout_s if timeout_s is None else timeout_s
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            await asyncio.gather(self._loop_task, return_exceptions=True)
        self._loop_task = None

        pending = self._active_tasks | self._refreshes
        if pending:
            logger.info("Waiting for %d in-flight fetch task(s)...", len(pending))
            _, late = await asyncio.wait(pending, timeout=timeout)
            for task in late:
                task.cancel()
            if late:
                await asyncio.gather(*late, return_exceptions=True)

        while not self._events.empty():
            event = self._events.get_nowait()
            if not event.future.done():
                event.future.set_exception(
                    WorkerLifecycleError("Offline worker shut down before handling request")
                )

        if self._state != "redundant":
            await self._transition("redundant")
        logger.info("Offline worker shut down (version=%s)", self.version)

    # ------------------------------------------------------------------
    # Event queue
    # ------------------------------------------------------------------

    async def submit(self, request: AssetRequest) -> AssetResponse:
        """Queue `request` for the consumer loop and wait for its response."""
        if self._state == "redundant":
            raise WorkerLifecycleError("Offline worker is redundant")
        future: asyncio.Future[AssetResponse] = asyncio.get_running_loop().create_future()
        self._events.put_nowait(
            FetchEvent(request=request, future=future, received_at=time.time())
        )
        return await future

    async def _loop(self) -> None:
        """Main consumer loop; every event is handled in its own task."""
        while True:
            try:
                event = await self._events.get()
            except asyncio.CancelledError:
                break
            task = asyncio.create_task(self._dispatch(event))
            self._active_tasks.add(task)
            task.add_done_callback(self._active_tasks.discard)

    async def _dispatch(self, event: FetchEvent) -> None:
        if event.future.done():
            return
        try:
            response = await self.handle_fetch(event.request)
        except asyncio.CancelledError:
            if not event.future.done():
                event.future.cancel()
            raise
        except Exception as exc:  # noqa: BLE001
            if not event.future.done():
                event.future.set_exception(exc)
            return
        if not event.future.done():
            event.future.set_result(response)

    # ------------------------------------------------------------------
    # Fetch policy
    # ------------------------------------------------------------------

    async def handle_fetch(self, request: AssetRequest) -> AssetResponse:
        strategy = self.policy.classify(request)
        self._metrics.incr("offline_requests_total", tags={"strategy": strategy})
        if strategy in ("passthrough-method", "passthrough-api"):
            return await self._transport.fetch(request)
        if strategy == "network-first":
            return await self._network_first(request)
        return await self._stale_while_revalidate(request)

    async def _read(self, key: str) -> AssetResponse | None:
        try:
            return await self._store.get(self.version, key)
        except Exception:  # noqa: BLE001
            logger.exception("Snapshot read failed for %s", key)
            return None

    async def _network_first(self, request: AssetRequest) -> AssetResponse:
        try:
            return await self._transport.fetch(request)
        except Exception as exc:
            for key in self.policy.fallback_keys():
                cached = await self._read(key)
                if cached is not None:
                    self._metrics.incr("offline_navigation_fallback_total")
                    logger.info(
                        "Navigation to %s failed (%s); serving cached %s",
                        request.url,
                        exc,
                        key,
                    )
                    return cached
            logger.warning("Navigation to %s failed with no cached shell", request.url)
            raise

    async def _stale_while_revalidate(self, request: AssetRequest) -> AssetResponse:
        key = self.policy.request_key(request.url)
        cached = await self._read(key)
        refresh = self._schedule_refresh(key, request)
        if cached is not None:
            self._metrics.incr("offline_cache_hit_total")
            return cached

        self._metrics.incr("offline_cache_miss_total")
        response = await asyncio.shield(refresh)
        if response is None:
            return AssetResponse.error(key)
        return response

    def _schedule_refresh(
        self, key: str, request: AssetRequest
    ) -> asyncio.Task[AssetResponse | None]:
        task = asyncio.create_task(self._revalidate(key, request))
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)
        return task

    async def _revalidate(self, key: str, request: AssetRequest) -> AssetResponse | None:
        try:
            response = await self._transport.fetch(request)
        except Exception as exc:  # noqa: BLE001
            self._metrics.incr("offline_refresh_failed_total")
            logger.debug("Background refresh failed for %s: %s", key, exc)
            return None

        if self.policy.is_cacheable(response):
            try:
                await self._store.put(self.version, key, response)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to store refreshed asset %s", key)
        return response

    async def drain(self) -> None:
        """Wait until every dispatched background refresh has finished."""
        while self._refreshes:
            await asyncio.gather(*list(self._refreshes), return_exceptions=True)

    async def describe(self) -> dict[str, Any]:
        """Status snapshot used by the HTTP host."""
        try:
            snapshots = await self._store.names()
            cached = await self._store.keys(self.version)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to describe snapshot store")
            snapshots, cached = [], []
        return {
            "state": self._state,
            "version": self.version,
            "snapshots": snapshots,
            "cached_keys": cached,
            "pending_refreshes": self.pending_refreshes,
            "queued_events": self.queued_events,
        }
