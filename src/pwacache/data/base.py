"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: data/base.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

KEY_SEPARATOR = ":"


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """One cached value with its insertion time and validity window."""

    key: str
    value: T
    stored_at: float
    ttl_s: float

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl_s

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl_s


def cache_key(resource: str, *selectors: object) -> str:
    """
    Compose a data-cache key from a resource name and its selectors.

    ``cache_key("orders", "user-1")`` -> ``"orders:user-1"``. Empty selectors
    are skipped so ``cache_key("stores")`` is just ``"stores"``.
    """
    name = resource.strip()
    if not name:
        raise ValueError("cache key resource must be non-empty")
    parts = [name, *(str(s) for s in selectors if s is not None and str(s) != "")]
    return KEY_SEPARATOR.join(parts)
