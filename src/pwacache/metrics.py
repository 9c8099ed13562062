"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics sinks for cache instrumentation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

# Counters emitted by the data cache and the offline worker, with the label
# names each one is recorded under.
CACHE_COUNTERS: dict[str, tuple[str, tuple[str, ...]]] = {
    "data_cache_hit_total": ("Data cache lookups served from a fresh entry", ()),
    "data_cache_miss_total": ("Data cache lookups that found nothing usable", ()),
    "data_cache_expired_total": ("Data cache entries dropped on access after their TTL", ()),
    "data_cache_evicted_total": ("Data cache entries evicted at capacity", ()),
    "offline_requests_total": ("Requests seen by the offline worker", ("strategy",)),
    "offline_cache_hit_total": ("Stale-while-revalidate requests served from a snapshot", ()),
    "offline_cache_miss_total": ("Stale-while-revalidate requests with no cached copy", ()),
    "offline_navigation_fallback_total": ("Failed navigations served from the cached shell", ()),
    "offline_refresh_failed_total": ("Background refreshes that got no response", ()),
    "offline_seed_failed_total": ("Shell assets that could not be cached on install", ()),
}


class CacheMetrics(Protocol):
    """Minimal metrics interface for cache instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpCacheMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class PrometheusCacheMetrics(CacheMetrics):
    """
    Prometheus-backed cache metrics adapter.

    Every counter in `CACHE_COUNTERS` is registered up front so scrapes show
    zeros before the first event. Names outside that table are registered on
    first use with whatever tag names they arrive with.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "pwacache", registry: Any | None = None) -> None:
        try:
            import prometheus_client
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusCacheMetrics requires `prometheus_client` to be installed."
            ) from exc

        self.namespace = namespace
        self.registry = prometheus_client.REGISTRY if registry is None else registry
        self._counter_type = prometheus_client.Counter
        self._counters: dict[str, tuple[Any, tuple[str, ...]]] = {}
        for name, (documentation, label_names) in CACHE_COUNTERS.items():
            self._register(name, documentation, label_names)

    def _register(
        self, name: str, documentation: str, label_names: tuple[str, ...]
    ) -> tuple[Any, tuple[str, ...]]:
        counter = self._counter_type(
            name=name,
            documentation=documentation,
            namespace=self.namespace,
            labelnames=label_names,
            registry=self.registry,
        )
        self._counters[name] = (counter, label_names)
        return counter, label_names

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        tags = tags or {}
        registered = self._counters.get(name)
        if registered is None:
            registered = self._register(name, f"pwacache counter {name}", tuple(sorted(tags)))
        counter, label_names = registered
        if not label_names:
            counter.inc(value)
            return
        # Missing tags are recorded as empty label values.
        counter.labels(**{label: str(tags.get(label, "")) for label in label_names}).inc(value)
