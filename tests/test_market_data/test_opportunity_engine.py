"""Tests for OpportunityEngine -- cross-venue spread detection and ranking.

Verifies:
- Only the positive side of a venue pair surfaces (no mirror pair)
- Strict threshold cutoff (spread == threshold is excluded)
- Missing rates exclude every pair involving that venue
- Deterministic ordering including tie-breaks
- Output is a pure function of the table
"""

from decimal import Decimal

import pytest

from fundarb.market_data.opportunity_engine import OpportunityEngine
from fundarb.models import Venue

THRESHOLD = Decimal("0.005")


@pytest.fixture
def engine() -> OpportunityEngine:
    return OpportunityEngine()


class TestScenarios:
    def test_positive_spread_surfaces_without_mirror(self, engine: OpportunityEngine) -> None:
        table = {"BTCUSDT": {Venue.ASTER: Decimal("0.02"), Venue.BASED: Decimal("-0.01")}}

        opps = engine.compute(table, THRESHOLD, now=100.0)

        assert len(opps) == 1
        opp = opps[0]
        assert opp.short_venue == Venue.ASTER
        assert opp.long_venue == Venue.BASED
        assert opp.spread == Decimal("0.03")
        assert opp.short_rate == Decimal("0.02")
        assert opp.long_rate == Decimal("-0.01")
        assert opp.id == "BTCUSDT-Aster-Based"
        assert opp.computed_at == 100.0

    def test_spread_below_threshold_is_empty(self, engine: OpportunityEngine) -> None:
        table = {"ETHUSDT": {Venue.ASTER: Decimal("0.001"), Venue.BASED: Decimal("0.0005")}}
        assert engine.compute(table, THRESHOLD) == []

    def test_spread_equal_to_threshold_is_excluded(self, engine: OpportunityEngine) -> None:
        table = {"ETHUSDT": {Venue.ASTER: Decimal("0.010"), Venue.BASED: Decimal("0.005")}}
        assert engine.compute(table, THRESHOLD) == []

    def test_single_venue_symbol_skipped(self, engine: OpportunityEngine) -> None:
        table = {"SOLUSDT": {Venue.ASTER: Decimal("0.5")}}
        assert engine.compute(table, THRESHOLD) == []


class TestMissingRates:
    def test_none_rate_excludes_venue(self, engine: OpportunityEngine) -> None:
        table = {
            "BTCUSDT": {
                Venue.ASTER: Decimal("0.05"),
                Venue.BASED: None,
                Venue.LIGHTER: Decimal("0.01"),
            }
        }

        opps = engine.compute(table, THRESHOLD)

        assert [(o.short_venue, o.long_venue) for o in opps] == [(Venue.ASTER, Venue.LIGHTER)]
        assert all(Venue.BASED not in (o.short_venue, o.long_venue) for o in opps)

    def test_only_one_non_null_rate(self, engine: OpportunityEngine) -> None:
        table = {"BTCUSDT": {Venue.ASTER: Decimal("0.05"), Venue.BASED: None}}
        assert engine.compute(table, THRESHOLD) == []


class TestInvariants:
    @pytest.fixture
    def table(self) -> dict:
        return {
            "BTCUSDT": {
                Venue.ASTER: Decimal("0.02"),
                Venue.BASED: Decimal("-0.01"),
                Venue.LIGHTER: Decimal("0.0125"),
                Venue.VARIATIONAL: Decimal("0.004"),
            },
            "ETHUSDT": {
                Venue.ASTER: Decimal("0.01"),
                Venue.LIGHTER: Decimal("-0.02"),
            },
            "ARBUSDT": {
                Venue.BASED: Decimal("0.03"),
                Venue.VARIATIONAL: Decimal("0"),
            },
        }

    def test_never_same_venue_and_always_above_threshold(
        self, engine: OpportunityEngine, table: dict
    ) -> None:
        opps = engine.compute(table, THRESHOLD)
        assert opps
        for opp in opps:
            assert opp.short_venue != opp.long_venue
            assert opp.spread > THRESHOLD
            assert opp.spread == opp.short_rate - opp.long_rate

    def test_sorted_descending_by_spread(self, engine: OpportunityEngine, table: dict) -> None:
        spreads = [o.spread for o in engine.compute(table, THRESHOLD)]
        assert spreads == sorted(spreads, reverse=True)

    def test_deterministic(self, engine: OpportunityEngine, table: dict) -> None:
        first = engine.compute(table, THRESHOLD, now=1.0)
        second = engine.compute(table, THRESHOLD, now=1.0)
        assert first == second

    def test_insertion_order_does_not_change_output(
        self, engine: OpportunityEngine, table: dict
    ) -> None:
        reordered = {
            symbol: dict(reversed(list(venues.items())))
            for symbol, venues in reversed(list(table.items()))
        }
        assert engine.compute(table, THRESHOLD, now=1.0) == engine.compute(
            reordered, THRESHOLD, now=1.0
        )

    def test_ties_broken_by_symbol_then_venues(self, engine: OpportunityEngine) -> None:
        table = {
            "ETHUSDT": {Venue.LIGHTER: Decimal("0.03"), Venue.ASTER: Decimal("0.01")},
            "BTCUSDT": {
                Venue.VARIATIONAL: Decimal("0.03"),
                Venue.BASED: Decimal("0.03"),
                Venue.ASTER: Decimal("0.01"),
            },
        }

        ids = [o.id for o in engine.compute(table, THRESHOLD)]

        assert ids == [
            "BTCUSDT-Based-Aster",
            "BTCUSDT-Variational-Aster",
            "ETHUSDT-Lighter-Aster",
        ]

    def test_input_table_not_mutated(self, engine: OpportunityEngine, table: dict) -> None:
        before = {s: dict(v) for s, v in table.items()}
        engine.compute(table, THRESHOLD)
        assert table == before
