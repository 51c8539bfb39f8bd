"""Cross-venue spread detection for funding rate arbitrage.

For each symbol quoted by at least two venues, every ordered venue pair
(A, B) is evaluated as "short on A, long on B":

  spread = rate[A] - rate[B]

A positive spread means the short leg receives more funding than the long
leg pays. Mirror pairs are not deduplicated: "short A / long B" and
"short B / long A" are different trades and only the positive side can
clear the threshold.

Cost is O(symbols * venues^2) with at most a handful of venues per symbol.
"""

import time
from decimal import Decimal

from fundarb.models import Opportunity, RateTable


def _sort_key(opp: Opportunity) -> tuple:
    return (-opp.spread, opp.symbol, opp.short_venue.value, opp.long_venue.value)


class OpportunityEngine:
    """Computes and ranks arbitrage opportunities from a rate table."""

    def compute(
        self,
        table: RateTable,
        threshold: Decimal,
        now: float | None = None,
    ) -> list[Opportunity]:
        """Return every venue pair whose spread strictly exceeds the threshold.

        Pairs where either rate is missing (None) are skipped. The result is
        sorted by spread descending, then symbol, then short and long venue
        names, so identical inputs always produce identical ordering.

        Args:
            table: ``symbol -> venue -> rate`` in percentage units.
            threshold: Minimum spread (exclusive) in percentage units.
            now: Timestamp stamped on every opportunity; defaults to time.time().

        Returns:
            Ranked list of Opportunity.
        """
        computed_at = time.time() if now is None else now
        opportunities: list[Opportunity] = []

        for symbol, venue_rates in table.items():
            quoted = [(venue, rate) for venue, rate in venue_rates.items() if rate is not None]
            if len(quoted) < 2:
                continue

            for short_venue, short_rate in quoted:
                for long_venue, long_rate in quoted:
                    if short_venue == long_venue:
                        continue
                    spread = short_rate - long_rate
                    if spread <= threshold:
                        continue
                    opportunities.append(
                        Opportunity(
                            id=Opportunity.make_id(symbol, short_venue, long_venue),
                            symbol=symbol,
                            short_venue=short_venue,
                            long_venue=long_venue,
                            short_rate=short_rate,
                            long_rate=long_rate,
                            spread=spread,
                            computed_at=computed_at,
                        )
                    )

        opportunities.sort(key=_sort_key)
        return opportunities
