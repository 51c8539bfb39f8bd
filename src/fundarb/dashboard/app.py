"""FastAPI dashboard application factory with JSON routes and a WebSocket hub."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from fundarb.dashboard.routes import actions, api, ws
from fundarb.dashboard.routes.ws import SnapshotHub


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application. Route handlers expect
        ``app.state.engine`` to hold an ArbitrageEngine.
    """
    app = FastAPI(
        title="Funding Rate Arbitrage Monitor",
        lifespan=lifespan,
    )

    app.state.hub = SnapshotHub()

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")
    app.include_router(ws.router)

    return app
