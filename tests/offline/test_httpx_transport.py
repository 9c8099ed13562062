from __future__ import annotations

import asyncio

import httpx
import pytest

from pwacache import AssetRequest, HttpxNetworkTransport, NetworkError
from pwacache.offline.transport import strip_hop_by_hop

SCOPE = "https://shop.test/app/"
UPSTREAM = "http://127.0.0.1:5173"


def run_async(coro):
    return asyncio.run(coro)


def _transport(handler) -> tuple[HttpxNetworkTransport, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxNetworkTransport(upstream_url=UPSTREAM, scope_url=SCOPE, client=client), client


def test_upstream_for_maps_scope_onto_upstream():
    transport = HttpxNetworkTransport(upstream_url=UPSTREAM, scope_url=SCOPE)

    assert transport.upstream_for("assets/app.js") == (f"{UPSTREAM}/assets/app.js", True)
    assert transport.upstream_for(f"{SCOPE}index.html?v=2") == (
        f"{UPSTREAM}/index.html?v=2",
        True,
    )
    assert transport.upstream_for("https://cdn.test/font.woff2") == (
        "https://cdn.test/font.woff2",
        False,
    )


def test_fetch_rewrites_url_and_types_response():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            headers={"content-type": "text/javascript", "connection": "keep-alive"},
            content=b"console.log(1)",
        )

    transport, client = _transport(handler)

    async def scenario():
        try:
            local = await transport.fetch(AssetRequest(url="assets/app.js"))
            remote = await transport.fetch(AssetRequest(url="https://cdn.test/lib.js"))
        finally:
            await client.aclose()
        return local, remote

    local, remote = run_async(scenario())

    assert str(seen[0].url) == f"{UPSTREAM}/assets/app.js"
    assert local.url == f"{SCOPE}assets/app.js"
    assert local.status == 200
    assert local.body == b"console.log(1)"
    assert local.type == "basic"
    assert local.content_type == "text/javascript"
    assert "connection" not in local.headers
    assert remote.type == "cors"


def test_fetch_forwards_method_and_body():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, content=b"{}")

    transport, client = _transport(handler)
    request = AssetRequest(
        url="rest/v1/orders",
        method="POST",
        headers={"content-type": "application/json", "host": "shop.test"},
        body=b'{"total": 5}',
    )

    async def scenario():
        try:
            return await transport.fetch(request)
        finally:
            await client.aclose()

    response = run_async(scenario())
    assert response.status == 201
    assert seen[0].method == "POST"
    assert seen[0].content == b'{"total": 5}'
    assert seen[0].headers["host"] == "127.0.0.1:5173"


def test_connection_failure_raises_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport, client = _transport(handler)

    async def scenario() -> None:
        try:
            with pytest.raises(NetworkError) as exc_info:
                await transport.fetch(AssetRequest(url="index.html"))
        finally:
            await client.aclose()
        assert exc_info.value.url == "index.html"

    run_async(scenario())


def test_strip_hop_by_hop_is_case_insensitive():
    headers = {"Content-Type": "text/html", "Transfer-Encoding": "chunked", "Host": "x"}
    assert strip_hop_by_hop(headers) == {"Content-Type": "text/html"}
