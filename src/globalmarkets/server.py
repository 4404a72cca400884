"""HTTP shell exposing the service over :mod:`aiohttp.web`."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime

from aiohttp import web

from globalmarkets.config import MarketsConfig
from globalmarkets.exceptions import UnknownEntityError
from globalmarkets.service import MarketDataService

_logger = logging.getLogger(__name__)

SERVICE_KEY: web.AppKey[MarketDataService] = web.AppKey("service", MarketDataService)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_INDEX_PAGE = """<html>
  <head><title>GlobalMarkets API</title></head>
  <body>
    <h1>GlobalMarkets API Server</h1>
    <h2>Available Endpoints:</h2>
    <ul>
      <li><code>GET /api/stocks</code> - cached stock index and GDP data</li>
      <li><code>GET /api/markets</code> - baseline data merged with the latest live readings</li>
      <li><code>GET /api/status</code> - cache status and age</li>
      <li><code>POST /api/refresh</code> - trigger a full data refresh</li>
      <li><code>GET /api/stocks/{countryId}/refresh</code> - fresh index readings for one country</li>
    </ul>
  </body>
</html>
"""

routes = web.RouteTableDef()


@web.middleware
async def cors_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=_CORS_HEADERS)
    response = await handler(request)
    response.headers.update(_CORS_HEADERS)
    return response


@routes.get("/")
async def index(_request: web.Request) -> web.Response:
    return web.Response(text=_INDEX_PAGE, content_type="text/html")


@routes.get("/health")
async def health(_request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})


@routes.get("/api/stocks")
async def get_stocks(request: web.Request) -> web.Response:
    snapshot = request.app[SERVICE_KEY].get_snapshot()
    if snapshot is None:
        return web.json_response(
            {
                "error": "No data available yet",
                "message": "Data is being fetched. Please try again in a few minutes.",
            },
            status=503,
        )
    return web.json_response(snapshot.to_json_dict())


@routes.get("/api/markets")
async def get_markets(request: web.Request) -> web.Response:
    view = request.app[SERVICE_KEY].merged_view()
    return web.json_response([entity.to_json_dict() for entity in view])


@routes.get("/api/status")
async def get_status(request: web.Request) -> web.Response:
    return web.json_response(request.app[SERVICE_KEY].get_status().to_json_dict())


@routes.post("/api/refresh")
async def post_refresh(request: web.Request) -> web.Response:
    ack = request.app[SERVICE_KEY].trigger_refresh()
    return web.json_response(ack.to_json_dict())


@routes.get("/api/stocks/{country_id}/refresh")
async def refresh_country(request: web.Request) -> web.Response:
    country_id = request.match_info["country_id"]
    try:
        result = await request.app[SERVICE_KEY].refresh_entity(country_id)
    except UnknownEntityError as exc:
        return web.json_response({"error": str(exc)}, status=404)
    return web.json_response(result.to_json_dict())


def create_app(config: MarketsConfig, *, service: MarketDataService | None = None) -> web.Application:
    """Build the web application.

    The service is entered on startup and exited on cleanup.  When
    ``config.scheduler_enabled`` is set, startup also runs the staleness
    check (a stale cache dispatches a detached refresh, startup does not
    wait for it) and arms the weekly trigger.
    """
    app = web.Application(middlewares=[cors_middleware])
    app[SERVICE_KEY] = service or MarketDataService(config)

    async def _service_ctx(app: web.Application) -> AsyncIterator[None]:
        svc = app[SERVICE_KEY]
        async with svc:
            if config.scheduler_enabled:
                svc.scheduler.start()
            yield

    app.cleanup_ctx.append(_service_ctx)
    app.add_routes(routes)
    return app
