"""POST endpoints for manual refresh and chart timeframe selection."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tradewatch.models import ChartKind, Timeframe
from tradewatch.sync.scheduler import RefreshScheduler

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/refresh")
async def refresh(request: Request) -> JSONResponse:
    """Trigger a full refresh cycle now (the header's Refresh button)."""
    scheduler: RefreshScheduler = request.app.state.scheduler
    triggered = scheduler.refresh_now()
    log.info("manual_refresh_requested", triggered=triggered)
    return JSONResponse(content={"triggered": triggered})


@router.post("/timeframe/{kind}")
async def set_timeframe(kind: str, timeframe: str, request: Request) -> JSONResponse:
    """Select a chart's timeframe; only that chart is refetched immediately."""
    scheduler: RefreshScheduler = request.app.state.scheduler

    try:
        chart_kind = ChartKind(kind)
        selected = Timeframe(timeframe)
    except ValueError as e:
        log.warning("timeframe_change_rejected", chart=kind, timeframe=timeframe)
        return JSONResponse(status_code=400, content={"error": str(e)})

    triggered = scheduler.set_timeframe(chart_kind, selected)
    return JSONResponse(
        content={
            "chart": chart_kind.value,
            "timeframe": selected.value,
            "triggered": triggered,
        }
    )
