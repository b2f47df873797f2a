"""JSON API endpoints exposing the synchronized dashboard state."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tradewatch.models import ChartKind
from tradewatch.sync.state import DashboardState

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/state")
async def get_state(request: Request) -> JSONResponse:
    """Full snapshot: entity slots, projected charts, timeframes, freshness."""
    state: DashboardState = request.app.state.dashboard
    return JSONResponse(content=state.snapshot())


@router.get("/charts/{kind}")
async def get_chart(kind: str, request: Request) -> JSONResponse:
    """Renderer-ready projection of one chart for its selected timeframe."""
    state: DashboardState = request.app.state.dashboard
    try:
        chart_kind = ChartKind(kind)
    except ValueError:
        return JSONResponse(status_code=404, content={"error": f"unknown chart {kind!r}"})

    symbol = state.metrics.base_token_symbol if state.metrics is not None else "ETH"
    content = state.chart(chart_kind).to_dict(symbol)
    content["selected_timeframe"] = state.timeframe(chart_kind).value
    return JSONResponse(content=content)
