"""Simulated leg executor.

No venue integration exists yet: each leg waits a fixed delay and then
succeeds with a configurable probability, returning a random 32-byte hex
transaction hash.
"""

import asyncio
import random

from fundarb.exceptions import LegExecutionError
from fundarb.execution.executor import LegExecutor
from fundarb.logging import get_logger
from fundarb.models import LegOrder, Venue

logger = get_logger(__name__)


class SimulatedLegExecutor(LegExecutor):
    """Stand-in executor for a single venue.

    Args:
        venue: Venue this executor routes to.
        delay: Seconds to wait before reporting the outcome.
        success_rate: Probability in [0, 1] that a leg succeeds.
        rng: Random source; inject a seeded ``random.Random`` in tests.
    """

    def __init__(
        self,
        venue: Venue,
        delay: float = 2.0,
        success_rate: float = 1.0,
        rng: random.Random | None = None,
    ) -> None:
        self.venue = venue
        self._delay = delay
        self._success_rate = success_rate
        self._rng = rng or random.Random()

    async def execute_leg(self, order: LegOrder) -> str:
        logger.info(
            "simulated_leg_submitted",
            venue=order.venue.value,
            symbol=order.symbol,
            side=order.side.value,
            amount=str(order.amount),
            leverage=order.leverage,
            stop_loss_pct=str(order.stop_loss_pct) if order.stop_loss_pct else None,
            take_profit_pct=str(order.take_profit_pct) if order.take_profit_pct else None,
        )
        if self._delay > 0:
            await asyncio.sleep(self._delay)

        if self._rng.random() >= self._success_rate:
            raise LegExecutionError(f"{order.venue.value} rejected simulated {order.side.value} leg")

        return f"0x{self._rng.getrandbits(256):064x}"
