from __future__ import annotations

from urllib.parse import urljoin

import pytest

from pwacache import (
    AssetRequest,
    AssetResponse,
    CacheSettings,
    InMemorySnapshotStore,
    NetworkError,
    OfflineWorker,
)
from pwacache.server import STATUS_PATH, OfflineProxyHost, request_mode

SCOPE = "http://testserver/"


class _SwitchableTransport:
    def __init__(self, routes: dict[str, AssetResponse]) -> None:
        self.routes = {urljoin(SCOPE, k): v for k, v in routes.items()}
        self.offline = False
        self.closed = False
        self.requests: list[AssetRequest] = []

    async def fetch(self, request: AssetRequest) -> AssetResponse:
        self.requests.append(request)
        url = urljoin(SCOPE, request.url)
        if self.offline:
            raise NetworkError("offline", url=url)
        return self.routes.get(url) or AssetResponse(url=url, status=404)

    async def aclose(self) -> None:
        self.closed = True


def _html(path: str, body: str) -> AssetResponse:
    return AssetResponse(
        url=urljoin(SCOPE, path),
        status=200,
        headers={"content-type": "text/html"},
        body=body.encode(),
    )


def _worker(*, skip_waiting: bool = True) -> tuple[OfflineWorker, _SwitchableTransport]:
    transport = _SwitchableTransport(
        {
            "./": _html("./", "<root/>"),
            "index.html": _html("index.html", "<shell/>"),
            "manifest.json": AssetResponse(
                url=urljoin(SCOPE, "manifest.json"),
                status=200,
                headers={"content-type": "application/json"},
                body=b'{"name": "Shop"}',
            ),
            "assets/app.js": AssetResponse(
                url=urljoin(SCOPE, "assets/app.js"),
                status=200,
                headers={"content-type": "text/javascript"},
                body=b"boot()",
            ),
            "rest/v1/orders": AssetResponse(
                url=urljoin(SCOPE, "rest/v1/orders"), status=201, body=b"{}"
            ),
        }
    )
    worker = OfflineWorker(
        store=InMemorySnapshotStore(),
        transport=transport,
        settings=CacheSettings(
            snapshot_version="shop-v6", scope_url=SCOPE, skip_waiting=skip_waiting
        ),
    )
    return worker, transport


@pytest.mark.parametrize(
    ("method", "headers", "expected"),
    [
        ("GET", {"sec-fetch-mode": "navigate"}, "navigate"),
        ("GET", {"sec-fetch-mode": "cors", "accept": "text/html"}, "cors"),
        ("GET", {"accept": "text/html,application/xhtml+xml"}, "navigate"),
        ("POST", {"accept": "text/html"}, "no-cors"),
        ("GET", {"accept": "*/*"}, "no-cors"),
    ],
)
def test_request_mode(method: str, headers: dict[str, str], expected: str):
    assert request_mode(method, headers) == expected


def test_proxy_host_serves_online_and_offline():
    pytest.importorskip("fastapi")
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    worker, transport = _worker()
    app = OfflineProxyHost(worker).create_app()

    with TestClient(app) as client:
        status = client.get(STATUS_PATH)
        assert status.status_code == 200
        body = status.json()
        assert body["state"] == "active"
        assert body["version"] == "shop-v6"
        assert body["snapshots"] == ["shop-v6"]
        assert urljoin(SCOPE, "index.html") in body["cached_keys"]

        asset = client.get("/assets/app.js")
        assert asset.status_code == 200
        assert asset.content == b"boot()"
        assert asset.headers["content-type"] == "text/javascript"

        created = client.post("/rest/v1/orders", content=b'{"total": 5}')
        assert created.status_code == 201
        assert transport.requests[-1].method == "POST"
        assert transport.requests[-1].body == b'{"total": 5}'

        transport.offline = True

        page = client.get("/orders/42", headers={"accept": "text/html"})
        assert page.status_code == 200
        assert page.text == "<shell/>"

        cached_asset = client.get("/assets/app.js")
        assert cached_asset.status_code == 200
        assert cached_asset.content == b"boot()"

        api = client.get("/rest/v1/orders")
        assert api.status_code == 504

        missing = client.get("/assets/missing.js")
        assert missing.status_code == 504
        assert missing.json()["detail"] == "Offline and not cached"

    assert worker.state == "redundant"
    assert transport.closed is True


def test_proxy_host_activates_worker_installed_without_skip_waiting():
    pytest.importorskip("fastapi")
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    worker, _ = _worker(skip_waiting=False)
    app = OfflineProxyHost(worker).create_app()

    with TestClient(app) as client:
        assert worker.state == "active"
        asset = client.get("/assets/app.js")
        assert asset.status_code == 200
        assert asset.content == b"boot()"
        assert client.get(STATUS_PATH).json()["state"] == "active"
