"""JSON API endpoints: rate table, ranked opportunities, engine status, trade execution."""

from __future__ import annotations

from decimal import Decimal

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fundarb.dashboard.snapshot import (
    decimal_to_str,
    serialize_execution,
    serialize_opportunity,
    serialize_rates,
)
from fundarb.exceptions import InvalidTradeRequest
from fundarb.models import Venue

log = structlog.get_logger(__name__)

router = APIRouter()


class TradeSelection(BaseModel):
    """Body of POST /api/trade."""

    symbol: str
    short_venue: Venue
    long_venue: Venue
    amount_per_leg: Decimal = Field(gt=0)
    leverage: int = Field(default=1, ge=1)
    stop_loss_pct: Decimal | None = None
    take_profit_pct: Decimal | None = None


@router.get("/rates")
async def get_rates(request: Request) -> JSONResponse:
    """Current ``symbol -> venue -> rate`` table (percentage units as strings)."""
    engine = request.app.state.engine
    return JSONResponse(content=serialize_rates(engine.get_rates()))


@router.get("/opportunities")
async def get_opportunities(request: Request, limit: int | None = None) -> JSONResponse:
    """Ranked opportunity list, highest spread first."""
    engine = request.app.state.engine
    opportunities = engine.get_opportunities()
    if limit is not None:
        opportunities = opportunities[: max(limit, 0)]
    return JSONResponse(content=[serialize_opportunity(o) for o in opportunities])


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Engine status: stream connectivity, last update, counts."""
    engine = request.app.state.engine
    return JSONResponse(content=decimal_to_str(engine.get_status()))


@router.post("/trade")
async def execute_trade(request: Request, selection: TradeSelection) -> JSONResponse:
    """Build a TradeRequest for the selected opportunity and execute both legs."""
    engine = request.app.state.engine
    try:
        trade = engine.select(
            selection.symbol,
            selection.short_venue,
            selection.long_venue,
            amount_per_leg=selection.amount_per_leg,
            leverage=selection.leverage,
            stop_loss_pct=selection.stop_loss_pct,
            take_profit_pct=selection.take_profit_pct,
        )
    except InvalidTradeRequest as e:
        log.info("trade_request_rejected", error=str(e))
        return JSONResponse(content={"error": str(e)}, status_code=422)

    result = await engine.execute(trade)
    return JSONResponse(
        content={
            "opportunity": serialize_opportunity(trade.opportunity),
            **serialize_execution(result),
        }
    )
