"""Periodic WebSocket push of the dashboard state snapshot.

The loop never fetches anything itself; the refresh scheduler keeps the
state current and this loop only mirrors it to connected clients. A
snapshot identical to the last one pushed is not sent again.
"""

from __future__ import annotations

import asyncio
import json

import structlog
from fastapi import FastAPI

log = structlog.get_logger(__name__)


async def dashboard_push_loop(app: FastAPI) -> None:
    """Broadcast ``app.state.dashboard.snapshot()`` every push interval.

    Runs until cancelled. Errors are logged and the loop continues.

    Args:
        app: The FastAPI application; its state holds ``hub``, ``dashboard``
             and ``push_interval``.
    """
    push_interval = getattr(app.state, "push_interval", 5)
    last_payload: str | None = None

    log.info("dashboard_push_loop_started", interval=push_interval)

    while True:
        try:
            await asyncio.sleep(push_interval)

            hub = app.state.hub
            if not hub.connections:
                continue

            payload = json.dumps(app.state.dashboard.snapshot())
            # New clients got the current snapshot on connect
            if payload == last_payload:
                continue

            delivered = await hub.broadcast(payload)
            last_payload = payload
            log.debug("dashboard_snapshot_pushed", clients=delivered, size=len(payload))

        except asyncio.CancelledError:
            log.info("dashboard_push_loop_cancelled")
            break
        except Exception:
            log.warning("dashboard_push_loop_error", exc_info=True)
            await asyncio.sleep(1)
