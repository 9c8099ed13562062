"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Web-app manifest diagnostics.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from ..errors import NetworkError
from ..types import AssetRequest, JSONValue
from .transport import NetworkTransport

logger = logging.getLogger("pwacache.offline")


@dataclass(frozen=True, slots=True)
class ManifestReport:
    """Outcome of fetching and parsing a web-app manifest."""

    url: str
    ok: bool
    status: int | None = None
    content_type: str | None = None
    problem: str | None = None
    data: JSONValue = None


async def check_manifest(transport: NetworkTransport, url: str) -> ManifestReport:
    """
    Fetch the manifest at `url` and report whether it is installable JSON.

    An HTML body usually means the file is missing from the build and the
    host fell back to the application shell.
    """
    try:
        response = await transport.fetch(AssetRequest(url=url, mode="cors"))
    except NetworkError as exc:
        logger.error("Manifest fetch failed: %s", exc)
        return ManifestReport(url=url, ok=False, problem=f"unreachable: {exc}")

    content_type = response.content_type
    if not response.ok:
        return ManifestReport(
            url=url,
            ok=False,
            status=response.status,
            content_type=content_type,
            problem=f"HTTP {response.status}",
        )
    if content_type and "text/html" in content_type.lower():
        return ManifestReport(
            url=url,
            ok=False,
            status=response.status,
            content_type=content_type,
            problem="served HTML instead of JSON; manifest is likely missing from the build",
        )
    try:
        data = json.loads(response.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        return ManifestReport(
            url=url,
            ok=False,
            status=response.status,
            content_type=content_type,
            problem=f"invalid JSON: {exc}",
        )
    return ManifestReport(
        url=url,
        ok=True,
        status=response.status,
        content_type=content_type,
        data=data,
    )
