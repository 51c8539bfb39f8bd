"""Canonical ``symbol -> venue -> rate`` table shared by all venue adapters.

Poll ticks and stream updates both funnel into merge(). Writes and the
opportunity recomputation happen under one asyncio.Lock, so a reader never
sees a table that is ahead of (or behind) the published opportunity list.
"""

import asyncio
import time
from collections.abc import Iterable
from decimal import Decimal

from fundarb.logging import get_logger
from fundarb.market_data.opportunity_engine import OpportunityEngine
from fundarb.models import Opportunity, RateRecord, RateTable, Venue

logger = get_logger(__name__)


class RateAggregator:
    """Owns the rate table and the current ranked opportunity list.

    Each (symbol, venue) pair holds only the latest merged rate. Venues are
    independently authoritative for their own rates, so no ordering is
    imposed across venues.

    Args:
        engine: Opportunity engine used after every merge.
        threshold: Minimum spread (percentage units) for an opportunity.
    """

    def __init__(self, engine: OpportunityEngine, threshold: Decimal) -> None:
        self._engine = engine
        self._threshold = threshold
        self._table: dict[str, dict[Venue, Decimal | None]] = {}
        self._opportunities: list[Opportunity] = []
        self._last_updated: float | None = None
        self._merge_count = 0
        self._lock = asyncio.Lock()

    @property
    def threshold(self) -> Decimal:
        return self._threshold

    @property
    def last_updated(self) -> float | None:
        """Unix timestamp of the last merge, or None before the first one."""
        return self._last_updated

    @property
    def merge_count(self) -> int:
        return self._merge_count

    async def merge(self, batch: Iterable[RateRecord]) -> list[Opportunity]:
        """Write a batch into the table and recompute opportunities.

        The batch is applied to a staged copy of the table; table and
        opportunity list are committed together only if the recompute
        succeeds. A failed recompute leaves both untouched and re-raises.

        Args:
            batch: Validated records from any adapter.

        Returns:
            The freshly computed opportunity list.
        """
        async with self._lock:
            staged = self._copy_table()
            written = 0
            for record in batch:
                staged.setdefault(record.symbol, {})[record.venue] = record.rate
                written += 1

            now = time.time()
            try:
                opportunities = self._engine.compute(staged, self._threshold, now=now)
            except ArithmeticError:
                logger.warning("merge_rejected", records=written, exc_info=True)
                raise

            self._table = staged
            self._opportunities = opportunities
            self._last_updated = now
            self._merge_count += 1
            result = list(opportunities)

        logger.debug(
            "rates_merged",
            records=written,
            symbols=len(self._table),
            opportunities=len(result),
        )
        return result

    async def set_threshold(self, threshold: Decimal) -> list[Opportunity]:
        """Change the spread cutoff and recompute against the current table."""
        async with self._lock:
            opportunities = self._engine.compute(self._table, threshold)
            self._threshold = threshold
            self._opportunities = opportunities
            result = list(opportunities)
        logger.info("threshold_updated", threshold=str(threshold), opportunities=len(result))
        return result

    def _copy_table(self) -> RateTable:
        return {symbol: dict(venues) for symbol, venues in self._table.items()}

    def get_rates(self) -> RateTable:
        """Return a copy of the rate table."""
        return self._copy_table()

    def get_opportunities(self) -> list[Opportunity]:
        """Return a copy of the current ranked opportunity list."""
        return list(self._opportunities)

    def get_rate(self, symbol: str, venue: Venue) -> Decimal | None:
        return self._table.get(symbol, {}).get(venue)
