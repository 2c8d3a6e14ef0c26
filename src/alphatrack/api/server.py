"""
HTTP server for the tracker's outbound views.

Routes:
    GET /                          liveness text
    GET /healthz                   service health JSON
    GET /metrics                   Prometheus exposition
    GET /api/markets               per-asset market data
    GET /api/competitions          live competition views
    GET /api/competitions/{id}     one competition (live or finalized)

/api routes require a matching X-API-Key header when a key is configured.
"""

from __future__ import annotations

import hmac
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

import orjson
from aiohttp import web
from prometheus_client import generate_latest

if TYPE_CHECKING:
    from prometheus_client.registry import CollectorRegistry
    from pydantic import BaseModel

    from alphatrack.contracts.events import CompetitionView, FinalizedRecord, MarketView

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
API_PREFIX = "/api/"

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class TrackerViews(Protocol):
    """Read-only views served by the API."""

    def market_snapshot(self) -> list[MarketView]: ...

    def competition_views(self) -> list[CompetitionView]: ...

    def competition_view(self, asset_id: str) -> CompetitionView | FinalizedRecord | None: ...

    def get_health_info(self) -> dict[str, Any]: ...


def _json_response(payload: Any, status: int = 200) -> web.Response:
    return web.Response(
        body=orjson.dumps(payload),
        status=status,
        content_type="application/json",
    )


def _envelope(data: Any) -> web.Response:
    return _json_response({"success": True, "ts": int(time.time() * 1000), "data": data})


def _dump(models: Sequence[BaseModel]) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json") for m in models]


def _make_api_key_middleware(api_key: str) -> Any:
    """Reject /api requests whose X-API-Key does not match."""

    @web.middleware
    async def middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
        if api_key and request.path.startswith(API_PREFIX):
            supplied = request.headers.get(API_KEY_HEADER, "")
            if not hmac.compare_digest(supplied.encode(), api_key.encode()):
                logger.warning("API request rejected", extra={"path": request.path})
                return _json_response({"success": False, "message": "access denied"}, status=403)
        return await handler(request)

    return middleware


def _make_metrics_handler(registry: CollectorRegistry) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(registry),
            content_type="text/plain; version=0.0.4",
            charset="utf-8",
        )

    return handler


def _make_healthz_handler(views: TrackerViews) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        return _json_response(views.get_health_info())

    return handler


def _make_markets_handler(views: TrackerViews) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        return _envelope(_dump(views.market_snapshot()))

    return handler


def _make_competitions_handler(views: TrackerViews) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        return _envelope(_dump(views.competition_views()))

    return handler


def _make_competition_handler(views: TrackerViews) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        asset_id = request.match_info["asset_id"]
        view = views.competition_view(asset_id)
        if view is None:
            return _json_response(
                {"success": False, "message": f"unknown competition: {asset_id}"},
                status=404,
            )
        return _envelope(view.model_dump(mode="json"))

    return handler


async def _liveness(request: web.Request) -> web.Response:
    return web.Response(text="alphatrack is running")


def create_api_app(
    views: TrackerViews,
    registry: CollectorRegistry,
    *,
    api_key: str = "",
) -> web.Application:
    """
    Create the aiohttp Application.

    Args:
        views: Source of market, competition and health data.
        registry: Prometheus registry served on /metrics.
        api_key: Required X-API-Key for /api routes; empty disables the check.

    Returns:
        aiohttp.web.Application ready to be started.
    """
    app = web.Application(middlewares=[_make_api_key_middleware(api_key)])
    app.router.add_get("/", _liveness)
    app.router.add_get("/healthz", _make_healthz_handler(views))
    app.router.add_get("/metrics", _make_metrics_handler(registry))
    app.router.add_get("/api/markets", _make_markets_handler(views))
    app.router.add_get("/api/competitions", _make_competitions_handler(views))
    app.router.add_get("/api/competitions/{asset_id}", _make_competition_handler(views))
    return app


async def start_api_server(
    views: TrackerViews,
    registry: CollectorRegistry,
    host: str = "0.0.0.0",
    port: int = 8080,
    *,
    api_key: str = "",
) -> web.AppRunner:
    """
    Start the HTTP server.

    Returns:
        AppRunner (pass to stop_api_server on shutdown).
    """
    app = create_api_app(views, registry, api_key=api_key)
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(
        "API server started",
        extra={"host": host, "port": port, "auth_required": bool(api_key)},
    )
    return runner


async def stop_api_server(runner: web.AppRunner) -> None:
    await runner.cleanup()
    logger.info("API server stopped")
