"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Versioned snapshot storage for offline assets.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..types import AssetResponse


@runtime_checkable
class SnapshotStore(Protocol):
    """
    Named collections of url -> response pairs kept outside the worker.

    Every operation is atomic for a single key; nothing spans keys.
    """

    backend_id: str

    async def names(self) -> list[str]: ...

    async def has(self, name: str) -> bool: ...

    async def open(self, name: str) -> None: ...

    async def delete(self, name: str) -> bool: ...

    async def get(self, name: str, url: str) -> AssetResponse | None: ...

    async def put(self, name: str, url: str, response: AssetResponse) -> None: ...

    async def remove(self, name: str, url: str) -> bool: ...

    async def keys(self, name: str) -> list[str]: ...

    async def match(self, url: str) -> AssetResponse | None: ...


class InMemorySnapshotStore(SnapshotStore):
    """Process-local snapshot store suitable for development/test workloads."""

    backend_id = "inmemory"

    def __init__(self) -> None:
        self._snapshots: dict[str, dict[str, AssetResponse]] = {}

    async def names(self) -> list[str]:
        return list(self._snapshots)

    async def has(self, name: str) -> bool:
        return name in self._snapshots

    async def open(self, name: str) -> None:
        self._snapshots.setdefault(name, {})

    async def delete(self, name: str) -> bool:
        return self._snapshots.pop(name, None) is not None

    async def get(self, name: str, url: str) -> AssetResponse | None:
        return self._snapshots.get(name, {}).get(url)

    async def put(self, name: str, url: str, response: AssetResponse) -> None:
        self._snapshots.setdefault(name, {})[url] = response

    async def remove(self, name: str, url: str) -> bool:
        return self._snapshots.get(name, {}).pop(url, None) is not None

    async def keys(self, name: str) -> list[str]:
        return list(self._snapshots.get(name, {}))

    async def match(self, url: str) -> AssetResponse | None:
        for rows in self._snapshots.values():
            hit = rows.get(url)
            if hit is not None:
                return hit
        return None
