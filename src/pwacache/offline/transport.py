"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Network transports used by the offline worker.
"""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urljoin

import httpx

from ..errors import NetworkError
from ..types import AssetRequest, AssetResponse

logger = logging.getLogger("pwacache.offline")

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "content-encoding",
        "content-length",
        "host",
    }
)


class NetworkTransport(Protocol):
    """Performs one request; raises `NetworkError` when no response arrives."""

    async def fetch(self, request: AssetRequest) -> AssetResponse: ...


def strip_hop_by_hop(headers) -> dict[str, str]:
    return {
        str(k): str(v) for k, v in headers.items() if str(k).lower() not in HOP_BY_HOP_HEADERS
    }


class HttpxNetworkTransport(NetworkTransport):
    """
    `httpx`-backed transport that maps scope URLs onto an upstream origin.

    Requests inside `scope_url` are rewritten to `upstream_url` and their
    responses are typed ``basic``; any other URL is fetched as-is and typed
    ``cors``. No timeout is configured here beyond the client's own default.
    """

    def __init__(
        self,
        *,
        upstream_url: str,
        scope_url: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.upstream_url = upstream_url if upstream_url.endswith("/") else upstream_url + "/"
        self.scope_url = scope_url if scope_url.endswith("/") else scope_url + "/"
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self._owns_client = client is None

    def upstream_for(self, url: str) -> tuple[str, bool]:
        """Return the upstream URL for `url` and whether it was in scope."""
        absolute = urljoin(self.scope_url, url)
        if absolute.startswith(self.scope_url):
            return urljoin(self.upstream_url, absolute[len(self.scope_url):]), True
        return absolute, False

    async def fetch(self, request: AssetRequest) -> AssetResponse:
        target, in_scope = self.upstream_for(request.url)
        try:
            resp = await self._client.request(
                request.method,
                target,
                headers=strip_hop_by_hop(request.headers),
                content=request.body,
            )
        except httpx.HTTPError as exc:
            logger.debug("Network fetch failed for %s: %s", target, exc)
            raise NetworkError(f"Failed to fetch {target}: {exc}", url=request.url) from exc
        return AssetResponse(
            url=urljoin(self.scope_url, request.url),
            status=resp.status_code,
            headers=strip_hop_by_hop(resp.headers),
            body=resp.content,
            type="basic" if in_scope else "cors",
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
