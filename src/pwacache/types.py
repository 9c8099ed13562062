"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request/response value types shared by the offline and data caches.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]

Clock: TypeAlias = Callable[[], float]

RequestMode = Literal["navigate", "same-origin", "cors", "no-cors"]
ResponseType = Literal["basic", "cors", "opaque", "error"]


@dataclass(frozen=True, slots=True)
class AssetRequest:
    """One outgoing request observed by the fetch interceptor."""

    url: str
    method: str = "GET"
    mode: RequestMode = "no-cors"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    @property
    def is_read(self) -> bool:
        return self.method.upper() == "GET"

    @property
    def is_navigation(self) -> bool:
        return self.mode == "navigate"


@dataclass(frozen=True, slots=True)
class AssetResponse:
    """
    Immutable network or cached response.

    Bodies are ``bytes`` so the copy kept in a snapshot and the copy handed
    to the caller can be the same object.
    """

    url: str
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    type: ResponseType = "basic"

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str | None:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return None

    @classmethod
    def error(cls, url: str = "") -> AssetResponse:
        """Return the empty network-error response (status 0)."""
        return cls(url=url, status=0, type="error")
