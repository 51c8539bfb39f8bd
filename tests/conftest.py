"""Shared test fixtures for the funding rate arbitrage engine."""

from collections.abc import Callable
from decimal import Decimal

import pytest

from fundarb.config import (
    AppSettings,
    DashboardSettings,
    EngineSettings,
    ExecutionSettings,
    StreamSettings,
    VenueSettings,
)
from fundarb.models import RateRecord, Venue


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no latency, no execution delay)."""
    return AppSettings(
        log_level="DEBUG",
        engine=EngineSettings(
            refresh_interval_ms=60000,
            min_spread_threshold_pct=Decimal("0.005"),
        ),
        venues=VenueSettings(
            aster_url="https://aster.test/fapi/v1/premiumIndex",
            based_url="https://based.test/info",
            variational_latency_seconds=0.0,
        ),
        stream=StreamSettings(
            ws_url="wss://lighter.test/stream",
            discovery_url="https://lighter.test/v1/order-book",
            discovery_timeout_seconds=1.0,
            open_timeout_seconds=1.0,
        ),
        execution=ExecutionSettings(simulated_delay_seconds=0.0),
        dashboard=DashboardSettings(enabled=False),
    )


@pytest.fixture
def make_record() -> Callable[..., RateRecord]:
    """Factory for RateRecords with string rates converted to Decimal."""

    def _make(symbol: str, venue: Venue, rate: str, observed_at: float = 1.0) -> RateRecord:
        return RateRecord(symbol=symbol, venue=venue, rate=Decimal(rate), observed_at=observed_at)

    return _make
