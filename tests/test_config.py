"""Tests for settings defaults and environment overrides."""

from decimal import Decimal

from fundarb.config import EngineSettings, StreamSettings, VenueSettings


def test_engine_defaults() -> None:
    settings = EngineSettings()
    assert settings.refresh_interval_ms == 30000
    assert settings.refresh_interval_seconds == 30.0
    assert settings.min_spread_threshold_pct == Decimal("0.005")


def test_engine_env_override(monkeypatch) -> None:
    monkeypatch.setenv("ENGINE_REFRESH_INTERVAL_MS", "5000")
    monkeypatch.setenv("ENGINE_MIN_SPREAD_THRESHOLD_PCT", "0.02")

    settings = EngineSettings()

    assert settings.refresh_interval_seconds == 5.0
    assert settings.min_spread_threshold_pct == Decimal("0.02")


def test_stream_env_override(monkeypatch) -> None:
    monkeypatch.setenv("LIGHTER_ENABLED", "false")
    monkeypatch.setenv("LIGHTER_SUBSCRIBE_MARGIN", "10")

    settings = StreamSettings()

    assert settings.enabled is False
    assert settings.subscribe_margin == 10
    assert settings.subscribe_floor_id == 19


def test_variational_symbols_default() -> None:
    assert VenueSettings().variational_symbols == [
        "BTCUSDT",
        "ETHUSDT",
        "XPLUSDT",
        "SOLUSDT",
        "ARBUSDT",
    ]
