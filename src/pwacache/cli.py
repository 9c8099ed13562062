"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Command line entrypoint: run the offline proxy or check a manifest.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import replace

from .offline.factory import create_snapshot_store
from .offline.manifest import check_manifest
from .offline.transport import HttpxNetworkTransport
from .offline.worker import OfflineWorker, WorkerLifecycleEvent
from .settings import CacheSettings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pwacache", description="Offline asset cache tooling")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="Serve an upstream origin through the offline worker")
    serve.add_argument("--upstream", help="Upstream origin (default: PWACACHE_UPSTREAM_URL)")
    serve.add_argument("--scope", help="Public scope URL (default: PWACACHE_SCOPE_URL)")
    serve.add_argument("--version", dest="snapshot_version", help="Snapshot version string")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    manifest = sub.add_parser("check-manifest", help="Verify a web-app manifest is served as JSON")
    manifest.add_argument("url", help="Absolute manifest URL")

    return parser.parse_args(argv)


def _log_lifecycle(event: WorkerLifecycleEvent) -> None:
    logger = logging.getLogger("pwacache.offline")
    if event.state != "active":
        return
    if event.update_available:
        logger.info(
            "New content available (%s replaced %s); refresh to update",
            event.version,
            ", ".join(event.purged_versions),
        )
    else:
        logger.info("Content cached for offline use (%s)", event.version)


def build_worker(settings: CacheSettings) -> OfflineWorker:
    if not settings.upstream_url:
        raise SystemExit("An upstream URL is required (--upstream or PWACACHE_UPSTREAM_URL)")
    transport = HttpxNetworkTransport(
        upstream_url=settings.upstream_url,
        scope_url=settings.scope_url,
    )
    return OfflineWorker(
        store=create_snapshot_store(settings),
        transport=transport,
        settings=settings,
        listeners=[_log_lifecycle],
    )


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .server import OfflineProxyHost

    settings = CacheSettings.from_env()
    overrides = {
        "upstream_url": args.upstream,
        "scope_url": args.scope,
        "snapshot_version": args.snapshot_version,
    }
    settings = replace(settings, **{k: v for k, v in overrides.items() if v})
    app = OfflineProxyHost(build_worker(settings)).create_app()
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


async def _check_manifest(url: str) -> int:
    transport = HttpxNetworkTransport(upstream_url=url, scope_url=url)
    try:
        report = await check_manifest(transport, url)
    finally:
        await transport.aclose()
    print(
        json.dumps(
            {
                "url": report.url,
                "ok": report.ok,
                "status": report.status,
                "content_type": report.content_type,
                "problem": report.problem,
            },
            indent=2,
        )
    )
    return 0 if report.ok else 1


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.cmd == "serve":
        return _serve(args)
    if args.cmd == "check-manifest":
        return asyncio.run(_check_manifest(args.url))
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
