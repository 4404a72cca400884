"""Command-line entry point: ``globalmarkets {serve,refresh,refresh-entity,status,show}``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from aiohttp import web

from globalmarkets.config import MarketsConfig
from globalmarkets.exceptions import ConfigError, UnknownEntityError
from globalmarkets.server import create_app
from globalmarkets.service import MarketDataService

_logger = logging.getLogger(__name__)


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _configure_logging(verbose: bool) -> None:
    if verbose:
        level: int | str = logging.DEBUG
    else:
        level = os.environ.get("GLOBALMARKETS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="globalmarkets", description="Live stock index and GDP data service.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--cache", help="Snapshot document path (overrides GLOBALMARKETS_CACHE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with the refresh scheduler")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Listen port")
    serve.add_argument("--no-scheduler", action="store_true", help="Disable startup and weekly refreshes")

    sub.add_parser("refresh", help="Run a full refresh in the foreground and persist it")
    single = sub.add_parser("refresh-entity", help="Print fresh index readings for one country")
    single.add_argument("entity_id")
    sub.add_parser("status", help="Print cache status")
    sub.add_parser("show", help="Print baseline data merged with the latest snapshot")
    return parser.parse_args(argv)


async def _run_refresh(config: MarketsConfig) -> int:
    async with MarketDataService(config) as service:
        snapshot = await service.orchestrator.run_full()
    _dump({"updatedAt": snapshot.updated_at.isoformat(), "countriesCount": len(snapshot.entities)})
    return 0


async def _run_refresh_entity(config: MarketsConfig, entity_id: str) -> int:
    async with MarketDataService(config) as service:
        try:
            result = await service.refresh_entity(entity_id)
        except UnknownEntityError as exc:
            print(str(exc), file=sys.stderr)
            return 2
    _dump(result.to_json_dict())
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    overrides: dict[str, Any] = {}
    if args.cache:
        overrides["cache_path"] = args.cache
    if args.command == "serve":
        if args.host:
            overrides["host"] = args.host
        if args.port:
            overrides["port"] = args.port
        if args.no_scheduler:
            overrides["scheduler_enabled"] = False

    try:
        config = MarketsConfig.from_env(**overrides)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    if args.command == "serve":
        _logger.info("Server running on http://%s:%s", config.host, config.port)
        web.run_app(create_app(config), host=config.host, port=config.port, print=None)
        return 0
    if args.command == "refresh":
        return asyncio.run(_run_refresh(config))
    if args.command == "refresh-entity":
        return asyncio.run(_run_refresh_entity(config, args.entity_id))

    service = MarketDataService(config)
    if args.command == "status":
        _dump(service.get_status().to_json_dict())
    else:
        _dump([entity.to_json_dict() for entity in service.merged_view()])
    return 0
