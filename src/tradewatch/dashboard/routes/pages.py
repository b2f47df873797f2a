"""Page route serving the main dashboard HTML template."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from tradewatch.charts import PROFILES
from tradewatch.sync.state import DashboardState

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def dashboard_index(request: Request) -> HTMLResponse:
    """Main dashboard page rendered from the current state snapshot."""
    templates: Jinja2Templates = request.app.state.templates
    state: DashboardState = request.app.state.dashboard

    context = {
        "snapshot": state.snapshot(),
        "metrics": state.metrics,
        "balances": state.balances,
        "positions": state.positions,
        "trades": state.trades,
        "profiles": PROFILES,
    }
    return templates.TemplateResponse(request, "index.html", context)
