"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: offline/redis_store.py.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any

from redis.exceptions import RedisError

from ..errors import SnapshotStoreError
from ..types import AssetResponse
from .snapshot import SnapshotStore

logger = logging.getLogger("pwacache.redis")


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def encode_response(response: AssetResponse) -> str:
    payload = {
        "url": response.url,
        "status": response.status,
        "headers": response.headers,
        "body": base64.b64encode(response.body).decode("ascii"),
        "type": response.type,
    }
    return json.dumps(payload, ensure_ascii=True)


def decode_response(blob: Any) -> AssetResponse | None:
    try:
        row = json.loads(_text(blob))
    except ValueError:
        return None
    if not isinstance(row, dict):
        return None
    headers = row.get("headers") if isinstance(row.get("headers"), dict) else {}
    try:
        return AssetResponse(
            url=str(row.get("url", "")),
            status=int(row.get("status", 0)),
            headers={str(k): str(v) for k, v in headers.items()},
            body=base64.b64decode(row.get("body") or ""),
            type=row.get("type", "basic"),
        )
    except (ValueError, TypeError):
        return None


class RedisSnapshotStore(SnapshotStore):
    """
    Redis-backed snapshot store for multi-process deployments.

    Layout:
    - ``{prefix}:snapshots`` sorted set of snapshot names scored by creation time
    - ``{prefix}:snapshot:{name}`` hash of url -> encoded response
    """

    backend_id = "redis"

    def __init__(self, redis_client, *, prefix: str = "pwacache") -> None:
        self._redis = redis_client
        self._prefix = prefix

    @property
    def _names_key(self) -> str:
        return f"{self._prefix}:snapshots"

    def _snapshot_key(self, name: str) -> str:
        return f"{self._prefix}:snapshot:{name}"

    async def names(self) -> list[str]:
        try:
            rows = await self._redis.zrange(self._names_key, 0, -1)
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to list snapshots: {exc}") from exc
        return [_text(row) for row in rows]

    async def has(self, name: str) -> bool:
        try:
            score = await self._redis.zscore(self._names_key, name)
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to look up snapshot {name}: {exc}") from exc
        return score is not None

    async def open(self, name: str) -> None:
        try:
            await self._redis.zadd(self._names_key, {name: time.time()}, nx=True)
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to open snapshot {name}: {exc}") from exc

    async def delete(self, name: str) -> bool:
        try:
            removed = await self._redis.zrem(self._names_key, name)
            await self._redis.delete(self._snapshot_key(name))
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to delete snapshot {name}: {exc}") from exc
        return bool(removed)

    async def get(self, name: str, url: str) -> AssetResponse | None:
        try:
            blob = await self._redis.hget(self._snapshot_key(name), url)
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to read {url} from {name}: {exc}") from exc
        if blob is None:
            return None
        response = decode_response(blob)
        if response is None:
            logger.warning("Dropping undecodable snapshot row %s in %s", url, name)
        return response

    async def put(self, name: str, url: str, response: AssetResponse) -> None:
        try:
            await self._redis.zadd(self._names_key, {name: time.time()}, nx=True)
            await self._redis.hset(self._snapshot_key(name), url, encode_response(response))
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to write {url} to {name}: {exc}") from exc

    async def remove(self, name: str, url: str) -> bool:
        try:
            removed = await self._redis.hdel(self._snapshot_key(name), url)
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to remove {url} from {name}: {exc}") from exc
        return bool(removed)

    async def keys(self, name: str) -> list[str]:
        try:
            rows = await self._redis.hkeys(self._snapshot_key(name))
        except RedisError as exc:
            raise SnapshotStoreError(f"Failed to list keys of {name}: {exc}") from exc
        return [_text(row) for row in rows]

    async def match(self, url: str) -> AssetResponse | None:
        for name in await self.names():
            hit = await self.get(name, url)
            if hit is not None:
                return hit
        return None
