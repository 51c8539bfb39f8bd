"""Variational funding rates (simulated).

Variational exposes no public rate API; its funding state lives in Arbitrum
contracts. Until an RPC-backed reader exists, this adapter produces random
rates for a fixed symbol list with artificial latency, so that the rest of
the pipeline exercises a third poll venue.
"""

import asyncio
import random
import time
from decimal import Decimal

from fundarb.logging import get_logger
from fundarb.models import RateRecord, Venue
from fundarb.venues.base import PollVenueAdapter

logger = get_logger(__name__)

# Rates are drawn uniformly from (-HALF_RANGE, +HALF_RANGE) percent
_HALF_RANGE = 0.025


class VariationalAdapter(PollVenueAdapter):
    """Simulated Variational feed.

    Args:
        symbols: Canonical symbols to emit.
        latency: Seconds to sleep before answering, mimicking an RPC round trip.
        rng: Random source; inject a seeded ``random.Random`` for reproducibility.
    """

    venue = Venue.VARIATIONAL

    def __init__(
        self,
        symbols: list[str],
        latency: float = 0.5,
        rng: random.Random | None = None,
    ) -> None:
        self._symbols = list(symbols)
        self._latency = latency
        self._rng = rng or random.Random()

    async def fetch(self) -> list[RateRecord]:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

        now = time.time()
        records = [
            RateRecord(
                symbol=symbol,
                venue=self.venue,
                rate=Decimal(str(round((self._rng.random() - 0.5) * 2 * _HALF_RANGE, 6))),
                observed_at=now,
            )
            for symbol in self._symbols
        ]
        logger.debug("variational_rates_simulated", count=len(records))
        return records
