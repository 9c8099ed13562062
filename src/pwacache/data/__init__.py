"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Application data cache: bounded TTL store and cached fetch wrapper.
"""

from .base import CacheEntry, cache_key
from .bounded import DataCache
from .coalescing import RequestCoalescer
from .query import CachedQuery, QueryResult
from .session import IdentityScope

__all__ = [
    "CacheEntry",
    "cache_key",
    "DataCache",
    "RequestCoalescer",
    "CachedQuery",
    "QueryResult",
    "IdentityScope",
]
