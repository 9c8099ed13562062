"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception hierarchy for pwacache.
"""

from __future__ import annotations


class PwaCacheError(RuntimeError):
    """Base error for all pwacache failures."""


class CacheConfigurationError(PwaCacheError):
    """Raised when settings or backend selection are invalid."""


class WorkerLifecycleError(PwaCacheError):
    """Raised on an illegal offline worker state transition."""


class NetworkError(PwaCacheError):
    """
    Raised by network transports when no response could be obtained.

    HTTP error statuses are responses, not ``NetworkError``.
    """

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class SnapshotStoreError(PwaCacheError):
    """Raised by snapshot stores when the backing storage fails."""
