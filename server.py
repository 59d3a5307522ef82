"""Lightweight aiohttp server -- the dashboard's HTTP API.

Market data routes answer with demo data (flagged `is_demo`) rather than
failing; state routes read and write the persisted records.
No framework magic, no middleware stack.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web
from pydantic import BaseModel, ValidationError

from core.models.events import Event
from core.models.overview import BriefingRequest
from core.models.portfolio import Portfolio
from core.protocols import MarketDataError
from rules.bands import buy_up_rising_rate_table, buy_up_zero_rate_table, sell_down_table

if TYPE_CHECKING:
    from core.bus import AsyncIOBus
    from core.config import AppConfig
    from core.registry import PluginRegistry
    from engine.briefing import BriefingService
    from engine.dashboard import Dashboard
    from engine.gateway import MarketGateway

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    bus: AsyncIOBus,
    registry: PluginRegistry,
    gateway: MarketGateway,
    briefing: BriefingService,
    dashboard: Dashboard,
) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application()

    # Store references for route handlers
    app["config"] = config
    app["bus"] = bus
    app["registry"] = registry
    app["gateway"] = gateway
    app["briefing"] = briefing
    app["dashboard"] = dashboard

    # Register routes
    app.router.add_get("/health", handle_health)
    app.router.add_get("/api/index", handle_get_index)
    app.router.add_get("/api/stock", handle_get_stock)
    app.router.add_get("/api/top-stocks", handle_get_top_stocks)
    app.router.add_post("/api/briefing", handle_create_briefing)
    app.router.add_get("/api/overview", handle_get_overview)
    app.router.add_post("/api/overview/refresh", handle_refresh_overview)
    app.router.add_get("/api/tables", handle_get_tables)
    app.router.add_get("/state/crisis", handle_get_crisis)
    app.router.add_post("/state/crisis/reset", handle_reset_crisis)
    app.router.add_get("/state/rate-mode", handle_get_rate_mode)
    app.router.add_put("/state/rate-mode", handle_set_rate_mode)
    app.router.add_get("/state/portfolio", handle_get_portfolio)
    app.router.add_put("/state/portfolio", handle_set_portfolio)
    app.router.add_get("/events", handle_stream_events)

    return app


def _error(message: str, status: int = 400) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _tagged(result: BaseModel) -> dict:
    """Live/Fallback result as JSON with an explicit is_demo flag."""
    body = result.model_dump(mode="json")
    body["is_demo"] = result.is_demo
    return body


async def _read_json(request: web.Request) -> dict | None:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return None
    return body if isinstance(body, dict) else None


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------

async def handle_health(request: web.Request) -> web.Response:
    """GET /health -- health check."""
    registry: PluginRegistry = request.app["registry"]
    dashboard: Dashboard = request.app["dashboard"]
    latest = dashboard.latest
    return web.json_response({
        "status": "ok",
        "plugins": registry.summary(),
        "last_updated": latest.last_updated.isoformat() if latest else None,
    })


async def handle_get_index(request: web.Request) -> web.Response:
    """GET /api/index -- reference index snapshot."""
    gateway: MarketGateway = request.app["gateway"]
    return web.json_response(_tagged(await gateway.get_index()))


async def handle_get_stock(request: web.Request) -> web.Response:
    """GET /api/stock?symbol=AAPL -- one security relative to its all-time-high."""
    gateway: MarketGateway = request.app["gateway"]
    symbol = request.query.get("symbol", "").strip()
    if not symbol:
        return _error("Missing required query parameter: symbol")

    try:
        result = await gateway.get_security(symbol)
    except MarketDataError as exc:
        return _error(str(exc), status=502)
    return web.json_response(_tagged(result))


async def handle_get_top_stocks(request: web.Request) -> web.Response:
    """GET /api/top-stocks[?limit=4] -- largest securities by market cap."""
    gateway: MarketGateway = request.app["gateway"]
    raw_limit = request.query.get("limit")
    limit = None
    if raw_limit is not None:
        try:
            limit = int(raw_limit)
        except ValueError:
            return _error("limit must be an integer")
        if limit < 1:
            return _error("limit must be at least 1")

    return web.json_response(_tagged(await gateway.get_top_securities(limit)))


async def handle_create_briefing(request: web.Request) -> web.Response:
    """POST /api/briefing -- narrative for a posted snapshot.

    Body: {"index": {...}, "top_security": {...}, "market_status": "normal",
           "rate_mode": "rising-rate", "crisis_state": {...}}
    """
    briefing: BriefingService = request.app["briefing"]

    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON")

    try:
        briefing_request = BriefingRequest.model_validate(body)
    except ValidationError as exc:
        return _error(f"Invalid briefing request: {exc.error_count()} error(s)")

    result = await briefing.generate(briefing_request)
    return web.json_response(result.model_dump(mode="json"))


async def handle_get_overview(request: web.Request) -> web.Response:
    """GET /api/overview -- latest evaluation, evaluating once if there is none."""
    dashboard: Dashboard = request.app["dashboard"]
    overview = dashboard.latest or await dashboard.evaluate()
    return web.json_response(overview.model_dump(mode="json"))


async def handle_refresh_overview(request: web.Request) -> web.Response:
    """POST /api/overview/refresh -- evaluate now."""
    dashboard: Dashboard = request.app["dashboard"]
    overview = await dashboard.evaluate()
    return web.json_response(overview.model_dump(mode="json"))


async def handle_get_tables(request: web.Request) -> web.Response:
    """GET /api/tables?reference=260.10 -- the three band tables for a reference price."""
    try:
        reference = float(request.query.get("reference", ""))
    except ValueError:
        return _error("reference must be a number")
    if reference <= 0:
        return _error("reference must be positive")

    def dump(bands: list) -> list[dict]:
        return [b.model_dump(mode="json") for b in bands]

    return web.json_response({
        "reference": reference,
        "sell_down": dump(sell_down_table(reference)),
        "buy_up_zero_rate": dump(buy_up_zero_rate_table(reference)),
        "buy_up_rising_rate": dump(buy_up_rising_rate_table(reference)),
    })


# ---------------------------------------------------------------------------
# Persisted state
# ---------------------------------------------------------------------------

async def handle_get_crisis(request: web.Request) -> web.Response:
    """GET /state/crisis -- the panic-period record."""
    dashboard: Dashboard = request.app["dashboard"]
    return web.json_response(dashboard.state.load_crisis_state().model_dump(mode="json"))


async def handle_reset_crisis(request: web.Request) -> web.Response:
    """POST /state/crisis/reset -- operator reset to inactive."""
    dashboard: Dashboard = request.app["dashboard"]
    state = await dashboard.reset_crisis()
    return web.json_response(state.model_dump(mode="json"))


async def handle_get_rate_mode(request: web.Request) -> web.Response:
    """GET /state/rate-mode"""
    dashboard: Dashboard = request.app["dashboard"]
    return web.json_response({"rate_mode": dashboard.state.load_rate_mode()})


async def handle_set_rate_mode(request: web.Request) -> web.Response:
    """PUT /state/rate-mode -- Body: {"rate_mode": "zero-rate" | "rising-rate"}"""
    dashboard: Dashboard = request.app["dashboard"]

    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON")
    if "rate_mode" not in body:
        return _error("Missing required field: rate_mode")

    try:
        mode = await dashboard.set_rate_mode(body["rate_mode"])
    except ValueError as exc:
        return _error(str(exc))
    return web.json_response({"rate_mode": mode})


async def handle_get_portfolio(request: web.Request) -> web.Response:
    """GET /state/portfolio"""
    dashboard: Dashboard = request.app["dashboard"]
    return web.json_response(dashboard.state.load_portfolio().model_dump(mode="json"))


async def handle_set_portfolio(request: web.Request) -> web.Response:
    """PUT /state/portfolio -- replace the portfolio."""
    dashboard: Dashboard = request.app["dashboard"]

    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON")

    try:
        portfolio = Portfolio.model_validate(body)
    except ValidationError as exc:
        return _error(f"Invalid portfolio: {exc.error_count()} error(s)")

    await dashboard.update_portfolio(portfolio)
    return web.json_response(portfolio.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Event stream
# ---------------------------------------------------------------------------

async def handle_stream_events(request: web.Request) -> web.StreamResponse:
    """GET /events -- Server-Sent Events stream for real-time updates.

    Subscribes to all events on the bus and streams them to the client.
    """
    bus: AsyncIOBus = request.app["bus"]

    response = web.StreamResponse(
        status=200,
        reason="OK",
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
    await response.prepare(request)

    queue: asyncio.Queue[Event] = asyncio.Queue()

    async def forward_event(event: Event) -> None:
        await queue.put(event)

    bus.subscribe("*", forward_event)

    try:
        while True:
            event = await queue.get()
            data = event.model_dump_json()
            await response.write(f"event: {event.type}\ndata: {data}\n\n".encode())
    except (asyncio.CancelledError, ConnectionResetError):
        pass
    finally:
        bus.unsubscribe("*", forward_event)

    return response
