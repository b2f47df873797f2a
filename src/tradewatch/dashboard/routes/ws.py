"""WebSocket channel: snapshot pushes out, refresh/timeframe commands in.

Clients receive the full state snapshot as soon as they connect and then on
every push interval. They may send JSON commands on the same socket:

    {"action": "refresh"}
    {"action": "timeframe", "chart": "volume", "timeframe": "7d"}

Each command is answered with a small ``{"ack": ...}`` or ``{"error": ...}``
frame; the data itself arrives with the next snapshot.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tradewatch.models import ChartKind, Timeframe
from tradewatch.sync.scheduler import RefreshScheduler

log = structlog.get_logger(__name__)

router = APIRouter()


class DashboardHub:
    """Tracks connected dashboard sockets and fans snapshots out to them."""

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self.connections.append(ws)
        log.info("dashboard_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("dashboard_ws_disconnected", total=len(self.connections))

    async def broadcast(self, payload: str) -> int:
        """Send one text frame to every client; clients that fail are dropped.

        Returns:
            Number of clients the frame was delivered to.
        """
        delivered = 0
        for ws in self.connections.copy():
            try:
                await ws.send_text(payload)
                delivered += 1
            except Exception:
                self.connections.remove(ws)
                log.warning("dashboard_ws_broadcast_error", remaining=len(self.connections))
        return delivered


def handle_command(scheduler: RefreshScheduler, message: dict[str, Any]) -> dict[str, Any]:
    """Apply one client command to the scheduler and build the reply frame."""
    action = message.get("action")
    if action == "refresh":
        return {"ack": "refresh", "triggered": scheduler.refresh_now()}
    if action == "timeframe":
        try:
            kind = ChartKind(message.get("chart"))
            timeframe = Timeframe(message.get("timeframe"))
        except ValueError as e:
            return {"error": str(e)}
        triggered = scheduler.set_timeframe(kind, timeframe)
        return {
            "ack": "timeframe",
            "chart": kind.value,
            "timeframe": timeframe.value,
            "triggered": triggered,
        }
    return {"error": f"unknown action {action!r}"}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    hub: DashboardHub = websocket.app.state.hub
    await hub.connect(websocket)
    try:
        await websocket.send_text(json.dumps(websocket.app.state.dashboard.snapshot()))
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await websocket.send_json({"error": "commands must be JSON objects"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"error": "commands must be JSON objects"})
                continue
            reply = handle_command(websocket.app.state.scheduler, message)
            log.info("dashboard_ws_command", action=message.get("action"), reply=reply)
            await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
