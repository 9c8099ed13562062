"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: data/coalescing.py.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class RequestCoalescer:
    """Deduplicate identical in-flight fetches by key."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Future[Any]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        existing = self._tasks.get(key)
        if existing is not None:
            return await asyncio.shield(existing)

        task: asyncio.Future[T] = asyncio.ensure_future(factory())
        self._tasks[key] = task
        task.add_done_callback(lambda _: self._forget(key, task))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Mark the failure retrieved; every waiter may already be cancelled.
        if not task.cancelled():
            task.exception()
