"""Periodic WebSocket push of engine snapshots."""

from __future__ import annotations

import asyncio

import structlog
from fastapi import FastAPI

from fundarb.dashboard.snapshot import build_snapshot

log = structlog.get_logger(__name__)

# Cap on opportunities per push; the REST endpoint serves the full list
_MAX_PUSHED_OPPORTUNITIES = 100


async def dashboard_update_loop(app: FastAPI) -> None:
    """Broadcast a snapshot every ``app.state.update_interval`` seconds.

    Skips the render when no client is connected. Runs until cancelled.
    """
    update_interval = getattr(app.state, "update_interval", 5)
    log.info("dashboard_update_loop_started", interval=update_interval)

    while True:
        try:
            await asyncio.sleep(update_interval)

            hub = app.state.hub
            if not hub.connections:
                continue

            await hub.broadcast(
                build_snapshot(app.state.engine, limit=_MAX_PUSHED_OPPORTUNITIES)
            )
        except asyncio.CancelledError:
            log.info("dashboard_update_loop_cancelled")
            break
        except Exception:
            log.warning("dashboard_update_loop_error", exc_info=True)
            await asyncio.sleep(1)
