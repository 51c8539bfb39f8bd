"""JSON serialization of the engine's read model.

Decimals are rendered as strings so no precision is lost on the wire.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fundarb.engine import ArbitrageEngine
from fundarb.models import ExecutionResult, LegResult, Opportunity, RateTable


def decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [decimal_to_str(item) for item in obj]
    return obj


def serialize_rates(table: RateTable) -> dict[str, dict[str, str | None]]:
    return {
        symbol: {
            venue.value: str(rate) if rate is not None else None
            for venue, rate in sorted(venues.items(), key=lambda kv: kv[0].value)
        }
        for symbol, venues in sorted(table.items())
    }


def serialize_opportunity(opp: Opportunity) -> dict[str, Any]:
    return {
        "id": opp.id,
        "symbol": opp.symbol,
        "short_venue": opp.short_venue.value,
        "long_venue": opp.long_venue.value,
        "short_rate": str(opp.short_rate),
        "long_rate": str(opp.long_rate),
        "spread": str(opp.spread),
        "computed_at": opp.computed_at,
    }


def _serialize_leg(leg: LegResult) -> dict[str, Any]:
    return {
        "venue": leg.venue.value,
        "side": leg.side.value,
        "success": leg.success,
        "tx_hash": leg.tx_hash,
        "error": leg.error,
    }


def serialize_execution(result: ExecutionResult) -> dict[str, Any]:
    return {
        "short_leg": _serialize_leg(result.short_leg),
        "long_leg": _serialize_leg(result.long_leg),
    }


def build_snapshot(engine: ArbitrageEngine, limit: int | None = None) -> dict[str, Any]:
    """Full read-model snapshot pushed to WebSocket clients."""
    opportunities = engine.get_opportunities()
    if limit is not None:
        opportunities = opportunities[:limit]
    return {
        "type": "snapshot",
        "status": decimal_to_str(engine.get_status()),
        "rates": serialize_rates(engine.get_rates()),
        "opportunities": [serialize_opportunity(o) for o in opportunities],
    }
