"""WebSocket hub broadcasting JSON engine snapshots to dashboard clients."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fundarb.dashboard.snapshot import build_snapshot

log = structlog.get_logger(__name__)

router = APIRouter()


class SnapshotHub:
    """Tracks WebSocket clients and broadcasts JSON payloads to all of them."""

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

    async def broadcast(self, payload: dict) -> None:
        """Send a payload to every client, dropping connections that fail."""
        for ws in self.connections.copy():
            try:
                await ws.send_json(payload)
            except Exception:
                self.connections.remove(ws)
                log.warning("dashboard_ws_broadcast_error", remaining=len(self.connections))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Push the current snapshot on connect, then periodic updates via the hub."""
    hub: SnapshotHub = websocket.app.state.hub
    await hub.connect(websocket)
    try:
        await websocket.send_json(build_snapshot(websocket.app.state.engine))
        while True:
            # Consume messages to keep connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        log.debug("dashboard_ws_client_left")
    finally:
        hub.disconnect(websocket)
