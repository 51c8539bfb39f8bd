"""POST endpoints for runtime config updates."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fundarb.config import RuntimeConfig

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/config")
async def update_config(request: Request) -> JSONResponse:
    """Update RuntimeConfig from a JSON body and apply it to the engine.

    Body: ``{"min_spread_threshold_pct": "0.01"}``. Empty values are ignored.
    """
    engine = request.app.state.engine

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(content={"error": "Body must be JSON"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse(content={"error": "Body must be a JSON object"}, status_code=400)

    rc = RuntimeConfig()
    val = body.get("min_spread_threshold_pct")
    if val is not None and str(val).strip():
        try:
            threshold = Decimal(str(val).strip())
        except InvalidOperation:
            return JSONResponse(
                content={"error": f"Invalid min_spread_threshold_pct: {val}"},
                status_code=400,
            )
        if not threshold.is_finite() or threshold < 0:
            return JSONResponse(
                content={"error": "min_spread_threshold_pct must be a non-negative number"},
                status_code=400,
            )
        rc.min_spread_threshold_pct = threshold

    await engine.apply_runtime_config(rc)
    log.info("config_updated_via_dashboard", threshold=str(engine.threshold))
    return JSONResponse(content={"min_spread_threshold_pct": str(engine.threshold)})
