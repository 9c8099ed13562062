"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache settings and explicit config loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import CacheConfigurationError

DEFAULT_SNAPSHOT_VERSION = "pwacache-v1"
DEFAULT_SHELL_ASSETS: tuple[str, ...] = ("./", "./index.html", "./manifest.json")
DEFAULT_NAVIGATION_FALLBACKS: tuple[str, ...] = ("./index.html", "index.html", "./")
DEFAULT_BYPASS_PATTERNS: tuple[str, ...] = ("/rest/v1/", "/auth/v1/")
DEFAULT_DATA_TTL_S = 5 * 60.0
DEFAULT_DATA_MAX_ENTRIES = 50

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_first(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty environment variable in `names`."""
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = _env_first(name)
    if raw is None:
        return default
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_first(name)
    if raw is None:
        return default
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise CacheConfigurationError(f"{name} must be a boolean, got '{raw}'")


def _env_number(name: str, default: str, cast):
    raw = _env_first(name, default=default) or default
    try:
        return cast(raw)
    except ValueError as exc:
        raise CacheConfigurationError(f"{name} is not a valid number: '{raw}'") from exc


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """Explicit settings shared by the offline worker, data cache and host."""

    snapshot_version: str = DEFAULT_SNAPSHOT_VERSION
    scope_url: str = "http://localhost:8000/"
    upstream_url: str | None = None
    shell_assets: tuple[str, ...] = DEFAULT_SHELL_ASSETS
    navigation_fallbacks: tuple[str, ...] = DEFAULT_NAVIGATION_FALLBACKS
    bypass_patterns: tuple[str, ...] = DEFAULT_BYPASS_PATTERNS
    skip_waiting: bool = True
    shutdown_timeout_s: float = 10.0

    data_default_ttl_s: float = DEFAULT_DATA_TTL_S
    data_max_entries: int = DEFAULT_DATA_MAX_ENTRIES

    snapshot_backend: str = "inmemory"
    redis_url: str | None = None
    redis_prefix: str = "pwacache"

    def __post_init__(self) -> None:
        if not self.snapshot_version.strip():
            raise CacheConfigurationError("snapshot_version must be non-empty")
        if self.data_max_entries < 1:
            raise CacheConfigurationError("data_max_entries must be >= 1")
        if self.data_default_ttl_s <= 0:
            raise CacheConfigurationError("data_default_ttl_s must be > 0")
        if not self.scope_url.endswith("/"):
            object.__setattr__(self, "scope_url", self.scope_url + "/")

    @staticmethod
    def from_env() -> "CacheSettings":
        """Load settings from `PWACACHE_*` environment variables."""
        return CacheSettings(
            snapshot_version=_env_first(
                "PWACACHE_VERSION", default=DEFAULT_SNAPSHOT_VERSION
            )
            or DEFAULT_SNAPSHOT_VERSION,
            scope_url=_env_first(
                "PWACACHE_SCOPE_URL", default="http://localhost:8000/"
            )
            or "http://localhost:8000/",
            upstream_url=_env_first("PWACACHE_UPSTREAM_URL"),
            shell_assets=_env_list("PWACACHE_SHELL_ASSETS", DEFAULT_SHELL_ASSETS),
            navigation_fallbacks=_env_list(
                "PWACACHE_NAVIGATION_FALLBACKS", DEFAULT_NAVIGATION_FALLBACKS
            ),
            bypass_patterns=_env_list(
                "PWACACHE_BYPASS_PATTERNS", DEFAULT_BYPASS_PATTERNS
            ),
            skip_waiting=_env_bool("PWACACHE_SKIP_WAITING", True),
            shutdown_timeout_s=_env_number("PWACACHE_SHUTDOWN_TIMEOUT_S", "10", float),
            data_default_ttl_s=_env_number("PWACACHE_DATA_TTL_S", "300", float),
            data_max_entries=_env_number("PWACACHE_DATA_MAX_ENTRIES", "50", int),
            snapshot_backend=(
                _env_first("PWACACHE_SNAPSHOT_BACKEND", default="inmemory")
                or "inmemory"
            ).lower(),
            redis_url=_env_first("PWACACHE_REDIS_URL", "REDIS_URL"),
            redis_prefix=_env_first("PWACACHE_REDIS_PREFIX", default="pwacache")
            or "pwacache",
        )
