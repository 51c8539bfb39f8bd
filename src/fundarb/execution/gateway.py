"""Execution boundary for selected arbitrage opportunities.

Builds validated TradeRequests and runs both legs concurrently. The legs are
independent: a failure on one side is recorded in its LegResult and never
cancels or rolls back the other side.
"""

import asyncio
from decimal import Decimal

from fundarb.exceptions import InvalidTradeRequest
from fundarb.execution.executor import LegExecutor
from fundarb.logging import get_logger
from fundarb.models import (
    ExecutionResult,
    LegOrder,
    LegResult,
    Opportunity,
    PositionSide,
    TradeRequest,
    Venue,
)

logger = get_logger(__name__)


class ExecutionGateway:
    """Routes each leg of a TradeRequest to its venue's LegExecutor.

    Args:
        executors: Executors to register, one per venue.
    """

    def __init__(self, executors: list[LegExecutor] | None = None) -> None:
        self._executors: dict[Venue, LegExecutor] = {}
        for executor in executors or []:
            self.register(executor)

    def register(self, executor: LegExecutor) -> None:
        """Register (or replace) the executor for ``executor.venue``."""
        self._executors[executor.venue] = executor

    def build_request(
        self,
        opportunity: Opportunity,
        amount_per_leg: Decimal,
        leverage: int,
        stop_loss_pct: Decimal | None = None,
        take_profit_pct: Decimal | None = None,
    ) -> TradeRequest:
        """Validate trade parameters and return a TradeRequest.

        Raises:
            InvalidTradeRequest: If amount is not positive, leverage is below
                1, or a stop-loss / take-profit percentage is negative.
        """
        if amount_per_leg <= 0:
            raise InvalidTradeRequest(f"amount_per_leg must be positive, got {amount_per_leg}")
        if leverage < 1:
            raise InvalidTradeRequest(f"leverage must be >= 1, got {leverage}")
        for name, value in (("stop_loss_pct", stop_loss_pct), ("take_profit_pct", take_profit_pct)):
            if value is not None and value < 0:
                raise InvalidTradeRequest(f"{name} must be >= 0, got {value}")

        return TradeRequest(
            opportunity=opportunity,
            amount_per_leg=amount_per_leg,
            leverage=leverage,
            stop_loss_pct=stop_loss_pct or None,
            take_profit_pct=take_profit_pct or None,
        )

    async def execute(self, request: TradeRequest) -> ExecutionResult:
        """Run the short and long legs concurrently and report both outcomes."""
        opp = request.opportunity
        short_order = self._leg_order(request, opp.short_venue, PositionSide.SHORT)
        long_order = self._leg_order(request, opp.long_venue, PositionSide.LONG)

        logger.info(
            "arbitrage_execution_started",
            opportunity_id=opp.id,
            spread=str(opp.spread),
            amount_per_leg=str(request.amount_per_leg),
            leverage=request.leverage,
        )

        short_leg, long_leg = await asyncio.gather(
            self._run_leg(short_order),
            self._run_leg(long_order),
        )
        result = ExecutionResult(short_leg=short_leg, long_leg=long_leg)

        log = logger.info if result.fully_filled else logger.warning
        log(
            "arbitrage_execution_finished",
            opportunity_id=opp.id,
            short_success=short_leg.success,
            long_success=long_leg.success,
        )
        return result

    @staticmethod
    def _leg_order(request: TradeRequest, venue: Venue, side: PositionSide) -> LegOrder:
        return LegOrder(
            venue=venue,
            symbol=request.opportunity.symbol,
            side=side,
            amount=request.amount_per_leg,
            leverage=request.leverage,
            stop_loss_pct=request.stop_loss_pct,
            take_profit_pct=request.take_profit_pct,
        )

    async def _run_leg(self, order: LegOrder) -> LegResult:
        executor = self._executors.get(order.venue)
        if executor is None:
            return LegResult(
                venue=order.venue,
                side=order.side,
                success=False,
                error=f"No executor registered for {order.venue.value}",
            )
        try:
            tx_hash = await executor.execute_leg(order)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "leg_execution_failed",
                venue=order.venue.value,
                side=order.side.value,
                error=str(e),
            )
            return LegResult(
                venue=order.venue,
                side=order.side,
                success=False,
                error=str(e) or type(e).__name__,
            )
        return LegResult(venue=order.venue, side=order.side, success=True, tx_hash=tx_hash)
