"""Engine facade -- wires venues, aggregation, scheduling and execution.

This is the only surface the presentation layer talks to. It exposes:
  1. the current rate table snapshot
  2. the current ranked opportunity list
  3. the last-update timestamp
  4. the stream connection state
and turns a (symbol, short venue, long venue) selection into a TradeRequest.

Component wiring order (in build_engine):
1. Shared httpx client (poll venues + stream discovery)
2. OpportunityEngine + RateAggregator
3. Poll adapters (Aster, Based, Variational)
4. ExecutionGateway with one SimulatedLegExecutor per venue
5. ArbitrageEngine
6. LighterStream (needs aggregator.merge and engine.on_stream_status)
7. Scheduler
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import httpx

from fundarb.config import AppSettings, RuntimeConfig
from fundarb.exceptions import InvalidTradeRequest
from fundarb.execution.gateway import ExecutionGateway
from fundarb.execution.simulated import SimulatedLegExecutor
from fundarb.logging import get_logger
from fundarb.market_data.aggregator import RateAggregator
from fundarb.market_data.opportunity_engine import OpportunityEngine
from fundarb.market_data.scheduler import Scheduler
from fundarb.models import (
    ConnectionState,
    ExecutionResult,
    Opportunity,
    RateTable,
    TradeRequest,
    Venue,
)
from fundarb.venues.aster import AsterAdapter
from fundarb.venues.based import BasedAdapter
from fundarb.venues.lighter import LighterStream
from fundarb.venues.variational import VariationalAdapter

logger = get_logger(__name__)


class ArbitrageEngine:
    """Read model and command surface over the aggregation pipeline.

    Args:
        aggregator: Owner of the rate table and opportunity list.
        gateway: Execution boundary for selected opportunities.
        http_client: Shared client closed by close(), if the engine owns one.
    """

    def __init__(
        self,
        aggregator: RateAggregator,
        gateway: ExecutionGateway,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._gateway = gateway
        self._http_client = http_client
        self._scheduler: Scheduler | None = None
        self._stream_status = ConnectionState.IDLE
        self._started_at: float | None = None

    def set_scheduler(self, scheduler: Scheduler) -> None:
        """Attach the scheduler (created after the engine because the stream
        adapter reports status back to the engine)."""
        self._scheduler = scheduler

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._scheduler is None:
            raise RuntimeError("Scheduler not attached")
        self._started_at = time.time()
        await self._scheduler.start()
        logger.info("engine_started", threshold=str(self._aggregator.threshold))

    async def stop(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
        logger.info("engine_stopped")

    async def close(self) -> None:
        """Stop and release all network resources."""
        await self.stop()
        if self._scheduler is not None:
            await self._scheduler.close()
        if self._http_client is not None:
            await self._http_client.aclose()

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    def on_stream_status(self, state: ConnectionState) -> None:
        """Status callback handed to the stream adapter."""
        self._stream_status = state

    @property
    def stream_status(self) -> ConnectionState:
        return self._stream_status

    @property
    def last_updated(self) -> float | None:
        return self._aggregator.last_updated

    @property
    def threshold(self) -> Decimal:
        return self._aggregator.threshold

    def get_rates(self) -> RateTable:
        return self._aggregator.get_rates()

    def get_opportunities(self) -> list[Opportunity]:
        return self._aggregator.get_opportunities()

    def find_opportunity(
        self, symbol: str, short_venue: Venue, long_venue: Venue
    ) -> Opportunity | None:
        """Look up the current opportunity for a symbol/venue-pair selection."""
        wanted = Opportunity.make_id(symbol, short_venue, long_venue)
        for opp in self._aggregator.get_opportunities():
            if opp.id == wanted:
                return opp
        return None

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._scheduler.running if self._scheduler else False,
            "started_at": self._started_at,
            "last_updated": self.last_updated,
            "stream_status": self._stream_status.value,
            "threshold": self._aggregator.threshold,
            "symbols": len(self._aggregator.get_rates()),
            "opportunities": len(self._aggregator.get_opportunities()),
            "poll_ticks": self._scheduler.tick_count if self._scheduler else 0,
            "merges": self._aggregator.merge_count,
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def select(
        self,
        symbol: str,
        short_venue: Venue,
        long_venue: Venue,
        amount_per_leg: Decimal,
        leverage: int,
        stop_loss_pct: Decimal | None = None,
        take_profit_pct: Decimal | None = None,
    ) -> TradeRequest:
        """Turn a selection into a TradeRequest for the current opportunity.

        Raises:
            InvalidTradeRequest: If no current opportunity matches the
                selection or the trade parameters are invalid.
        """
        opportunity = self.find_opportunity(symbol, short_venue, long_venue)
        if opportunity is None:
            raise InvalidTradeRequest(
                f"No current opportunity for {symbol} short {short_venue.value} / long {long_venue.value}"
            )
        return self._gateway.build_request(
            opportunity,
            amount_per_leg=amount_per_leg,
            leverage=leverage,
            stop_loss_pct=stop_loss_pct,
            take_profit_pct=take_profit_pct,
        )

    async def execute(self, request: TradeRequest) -> ExecutionResult:
        return await self._gateway.execute(request)

    async def set_threshold(self, threshold: Decimal) -> list[Opportunity]:
        """Change the spread cutoff and return the recomputed opportunity list."""
        return await self._aggregator.set_threshold(threshold)

    async def apply_runtime_config(self, config: RuntimeConfig) -> None:
        """Apply non-None runtime overrides (currently the spread threshold)."""
        if config.min_spread_threshold_pct is not None:
            await self.set_threshold(config.min_spread_threshold_pct)


def build_engine(
    settings: AppSettings,
    http_client: httpx.AsyncClient | None = None,
    connector: Callable[..., Any] | None = None,
    rng: random.Random | None = None,
) -> ArbitrageEngine:
    """Build the full engine dependency graph from settings.

    Does not start anything; call ``await engine.start()``.

    Args:
        settings: Application-wide settings.
        http_client: Optional shared client (tests pass one with a mock transport).
        connector: Optional websocket connector for the stream adapter.
        rng: Optional random source for the simulated venue and executors.
    """
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.engine.http_timeout_seconds)
    rng = rng or random.Random()

    aggregator = RateAggregator(OpportunityEngine(), settings.engine.min_spread_threshold_pct)

    poll_adapters = [
        AsterAdapter(settings.venues.aster_url, client=client),
        BasedAdapter(settings.venues.based_url, client=client),
        VariationalAdapter(
            settings.venues.variational_symbols,
            latency=settings.venues.variational_latency_seconds,
            rng=rng,
        ),
    ]

    gateway = ExecutionGateway(
        [
            SimulatedLegExecutor(
                venue,
                delay=settings.execution.simulated_delay_seconds,
                success_rate=settings.execution.simulated_success_rate,
                rng=rng,
            )
            for venue in Venue
        ]
    )

    engine = ArbitrageEngine(aggregator, gateway, http_client=client if owns_client else None)

    stream = None
    if settings.stream.enabled:
        stream = LighterStream(
            settings.stream,
            on_rates=aggregator.merge,
            on_status=engine.on_stream_status,
            http_client=client,
            connector=connector,
        )

    engine.set_scheduler(
        Scheduler(
            aggregator,
            poll_adapters,
            stream_adapter=stream,
            refresh_interval=settings.engine.refresh_interval_seconds,
        )
    )
    return engine
