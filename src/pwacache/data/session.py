"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Identity-bound invalidation for the data cache.
"""

from __future__ import annotations

import logging

from .bounded import DataCache

logger = logging.getLogger("pwacache.data")


class IdentityScope:
    """
    Clear a `DataCache` whenever the signed-in identity changes.

    An identity is any hashable value, typically ``(user_id, role)``, so a
    role switch for the same user also counts as a change.
    """

    def __init__(self, cache: DataCache) -> None:
        self.cache = cache
        self._identity: object | None = None

    @property
    def identity(self) -> object | None:
        return self._identity

    def switch(self, identity: object) -> bool:
        """Bind `identity`; returns True when the cache was cleared."""
        if identity == self._identity:
            return False
        cleared = self._identity is not None or len(self.cache) > 0
        if cleared:
            logger.info("Identity changed, clearing %d cached entries", len(self.cache))
            self.cache.clear()
        self._identity = identity
        return cleared

    def sign_out(self) -> None:
        self.cache.clear()
        self._identity = None
