"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request classification and cache-key rules for the offline worker.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urljoin, urldefrag, urlsplit

from ..settings import CacheSettings
from ..types import AssetRequest, AssetResponse

Strategy = Literal[
    "passthrough-method",
    "passthrough-api",
    "network-first",
    "stale-while-revalidate",
]


@dataclass(frozen=True, slots=True)
class RequestPolicy:
    """
    Ordered request rules; the first match decides the strategy.

    1. non-GET requests pass through
    2. backend API paths pass through
    3. navigations are network-first with shell fallbacks
    4. everything else is stale-while-revalidate
    """

    scope_url: str
    bypass_patterns: tuple[str, ...] = ("/rest/v1/", "/auth/v1/")
    navigation_fallbacks: tuple[str, ...] = ("./index.html", "index.html", "./")

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> RequestPolicy:
        return cls(
            scope_url=settings.scope_url,
            bypass_patterns=settings.bypass_patterns,
            navigation_fallbacks=settings.navigation_fallbacks,
        )

    def classify(self, request: AssetRequest) -> Strategy:
        if not request.is_read:
            return "passthrough-method"
        if self.is_backend_api(request.url):
            return "passthrough-api"
        if request.is_navigation:
            return "network-first"
        return "stale-while-revalidate"

    def is_backend_api(self, url: str) -> bool:
        path = urlsplit(self.resolve(url)).path
        return any(pattern in path for pattern in self.bypass_patterns)

    def resolve(self, url: str) -> str:
        """Absolute URL for `url` relative to the worker scope."""
        return urljoin(self.scope_url, url)

    def request_key(self, url: str) -> str:
        """Snapshot key: absolute URL without fragment, query preserved."""
        return urldefrag(self.resolve(url)).url

    def keys_for(self, paths: Iterable[str]) -> list[str]:
        """Resolve `paths` to snapshot keys, keeping first occurrences only."""
        seen: list[str] = []
        for path in paths:
            key = self.request_key(path)
            if key not in seen:
                seen.append(key)
        return seen

    def fallback_keys(self) -> list[str]:
        return self.keys_for(self.navigation_fallbacks)

    def is_same_origin(self, url: str) -> bool:
        scope = urlsplit(self.scope_url)
        target = urlsplit(self.resolve(url))
        return (scope.scheme, scope.netloc) == (target.scheme, target.netloc)

    @staticmethod
    def is_cacheable(response: AssetResponse | None) -> bool:
        """Only complete same-origin 200 responses are worth keeping."""
        return (
            response is not None
            and response.status == 200
            and response.type == "basic"
        )
