"""Entry point for the tradewatch dashboard.

Wires all components together and serves the FastAPI dashboard. The
refresh scheduler and the dashboard share a single asyncio event loop via
uvicorn's programmatic API and FastAPI's lifespan context manager.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. BackendGateway (base URL resolved for the host context)
4. DashboardState (view state slots)
5. FetchAggregator (batched fetch + apply)
6. RefreshScheduler (interval and timeframe-driven refresh)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from tradewatch.backend.gateway import BackendGateway
from tradewatch.config import AppSettings
from tradewatch.logging import get_logger, setup_logging
from tradewatch.models import Timeframe
from tradewatch.sync.aggregator import FetchAggregator
from tradewatch.sync.scheduler import RefreshScheduler
from tradewatch.sync.state import DashboardState

_DRAIN_TIMEOUT = 5.0  # seconds to let in-flight requests settle on shutdown


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the sync pipeline from settings.

    Does NOT open the HTTP session or start polling -- that happens in the
    lifespan (dashboard mode) or run() (headless mode).
    """
    gateway = BackendGateway.from_settings(settings.backend)
    state = DashboardState(default_timeframe=Timeframe(settings.sync.default_timeframe))
    aggregator = FetchAggregator(gateway, state, trades_window=settings.sync.trades_window)
    scheduler = RefreshScheduler(aggregator, interval=settings.sync.interval)

    return {
        "gateway": gateway,
        "state": state,
        "aggregator": aggregator,
        "scheduler": scheduler,
    }


async def _shutdown(components: dict[str, Any]) -> None:
    scheduler: RefreshScheduler = components["scheduler"]
    await scheduler.stop()
    await scheduler.drain(timeout=_DRAIN_TIMEOUT)
    await components["gateway"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the gateway, scheduler and push loop; tear them down on exit."""
    from tradewatch.dashboard.update_loop import dashboard_push_loop

    logger = get_logger("tradewatch.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    app.state.dashboard = components["state"]
    app.state.scheduler = components["scheduler"]
    app.state.push_interval = settings.dashboard.push_interval

    await components["gateway"].start()
    await components["scheduler"].start()
    push_task = asyncio.create_task(dashboard_push_loop(app))

    logger.info("lifespan_started", backend=components["gateway"].base_url)

    yield

    push_task.cancel()
    try:
        await push_task
    except asyncio.CancelledError:
        pass

    await _shutdown(components)
    logger.info("tradewatch_stopped")


async def run() -> None:
    """Run the dashboard.

    With DASHBOARD_ENABLED=true (default) the FastAPI app is served by
    uvicorn and the lifespan owns the components. Otherwise the scheduler
    runs headless until SIGINT/SIGTERM.
    """
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("tradewatch.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from tradewatch.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            backend=components["gateway"].base_url,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    logger.info("starting_headless", backend=components["gateway"].base_url)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await components["gateway"].start()
    await components["scheduler"].start()
    try:
        await stop_event.wait()
    finally:
        await _shutdown(components)
        logger.info("tradewatch_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
