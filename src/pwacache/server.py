"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

FastAPI host that serves an application origin through the offline worker.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .errors import NetworkError, WorkerLifecycleError
from .offline.transport import strip_hop_by_hop
from .offline.worker import OfflineWorker
from .types import AssetRequest, RequestMode

logger = logging.getLogger("pwacache.server")

STATUS_PATH = "/__pwacache__/status"
_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class OfflineProxyHostError(RuntimeError):
    """Raised for invalid proxy host setup."""


def request_mode(method: str, headers: dict[str, str]) -> RequestMode:
    """
    Infer the fetch mode of an incoming request.

    Browsers send ``Sec-Fetch-Mode``; without it a GET that accepts HTML is
    treated as a top-level navigation.
    """
    declared = headers.get("sec-fetch-mode", "").strip().lower()
    if declared in ("navigate", "same-origin", "cors", "no-cors"):
        return declared  # type: ignore[return-value]
    if method.upper() == "GET" and "text/html" in headers.get("accept", "").lower():
        return "navigate"
    return "no-cors"


async def to_asset_request(request: Request) -> AssetRequest:
    headers = {k.lower(): v for k, v in request.headers.items()}
    url = request.url.path.lstrip("/")
    if request.url.query:
        url = f"{url}?{request.url.query}"
    body = await request.body()
    return AssetRequest(
        url=url or "./",
        method=request.method,
        mode=request_mode(request.method, headers),
        headers=strip_hop_by_hop(headers),
        body=body or None,
    )


class OfflineProxyHost:
    """Expose an `OfflineWorker` as a reverse proxy in front of an upstream origin."""

    def __init__(self, worker: OfflineWorker, *, title: str = "pwacache") -> None:
        self.worker = worker
        self.title = title

    def create_app(self):
        """Create and return the FastAPI app."""
        try:
            from fastapi import FastAPI
        except Exception as exc:  # pragma: no cover - optional runtime path
            raise OfflineProxyHostError(
                "FastAPI is required to host the offline proxy"
            ) from exc

        worker = self.worker

        @asynccontextmanager
        async def lifespan(_app):
            if worker.state == "new":
                await worker.start()
            # Without skip_waiting the worker waits for a client to claim;
            # the host is that client, so it activates once install is done.
            if worker.state == "installed":
                await worker.activate()
            try:
                yield
            finally:
                await worker.shutdown()
                close = getattr(worker.transport, "aclose", None)
                if close is not None:
                    await close()

        app = FastAPI(title=self.title, lifespan=lifespan)

        @app.get(STATUS_PATH)
        async def status() -> dict[str, Any]:
            return await worker.describe()

        @app.api_route("/{path:path}", methods=_METHODS)
        async def intercept(path: str, request: Request) -> Response:
            _ = path
            asset_request = await to_asset_request(request)
            try:
                result = await worker.submit(asset_request)
            except NetworkError as exc:
                logger.warning("Upstream unreachable for %s: %s", asset_request.url, exc)
                return JSONResponse({"detail": "Upstream unreachable"}, status_code=504)
            except WorkerLifecycleError as exc:
                return JSONResponse({"detail": str(exc)}, status_code=503)

            if result.type == "error" or result.status == 0:
                return JSONResponse({"detail": "Offline and not cached"}, status_code=504)
            return Response(
                content=result.body,
                status_code=result.status,
                headers=strip_hop_by_hop(result.headers),
            )

        return app
