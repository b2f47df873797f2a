"""FastAPI dashboard application factory with Jinja2 templates and WebSocket hub."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from tradewatch import formatting
from tradewatch.dashboard.routes import actions, api, pages, ws
from tradewatch.dashboard.routes.ws import DashboardHub

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _local_datetime(value: str | None) -> str:
    """Render an ISO timestamp in local time, or '-' when missing/unparseable."""
    if not value:
        return "-"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return dt.astimezone().strftime("%x %X")


def _local_time(value: str | None) -> str:
    if not value:
        return "-"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return dt.astimezone().strftime("%X")


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start/stop the refresh scheduler.

    Returns:
        Configured FastAPI application with templates, WebSocket hub, and routes.
        ``app.state.dashboard`` (DashboardState) and ``app.state.scheduler``
        (RefreshScheduler) must be set before serving requests.
    """
    app = FastAPI(
        title="Trading Bot Dashboard",
        lifespan=lifespan,
    )

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["format_number"] = formatting.format_number
    templates.env.filters["format_percent"] = formatting.format_percent
    templates.env.filters["format_currency"] = formatting.format_currency
    templates.env.filters["signed_percent"] = formatting.signed_percent
    templates.env.filters["local_datetime"] = _local_datetime
    templates.env.filters["local_time"] = _local_time
    templates.env.globals["short_id"] = formatting.short_id
    app.state.templates = templates

    app.state.hub = DashboardHub()
    app.state.push_interval = 5

    app.include_router(pages.router)
    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")
    app.include_router(ws.router)

    return app
