"""Configuration system using pydantic-settings with environment variable loading."""

from dataclasses import dataclass
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Refresh cadence and opportunity cutoff for the aggregation engine."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    refresh_interval_ms: int = 30000  # poll cadence for HTTP venues
    min_spread_threshold_pct: Decimal = Decimal("0.005")  # 0.005% minimum spread to surface
    http_timeout_seconds: float = 10.0

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_ms / 1000


class VenueSettings(BaseSettings):
    """Endpoints and simulation knobs for the poll-based venues."""

    model_config = SettingsConfigDict(env_prefix="VENUES_")

    aster_url: str = "https://fapi.asterdex.com/fapi/v1/premiumIndex"
    based_url: str = "https://api.hyperliquid.xyz/info"
    variational_latency_seconds: float = 0.5
    variational_symbols: list[str] = ["BTCUSDT", "ETHUSDT", "XPLUSDT", "SOLUSDT", "ARBUSDT"]


class StreamSettings(BaseSettings):
    """Lighter websocket stream and market discovery configuration.

    Subscriptions cover every market id from 0 up to
    ``max(highest_known_id, subscribe_floor_id) + subscribe_margin`` so that
    markets listed after the discovery call still get picked up.
    """

    model_config = SettingsConfigDict(env_prefix="LIGHTER_")

    enabled: bool = True
    ws_url: str = "wss://mainnet.zklighter.elliot.ai/stream"
    discovery_url: str = "https://mainnet.zklighter.elliot.ai/v1/order-book"
    discovery_timeout_seconds: float = 5.0
    open_timeout_seconds: float = 10.0
    channel_topic: str = "market_stats"
    subscribe_floor_id: int = 19
    subscribe_margin: int = 5


class ExecutionSettings(BaseSettings):
    """Simulated trade execution parameters."""

    model_config = SettingsConfigDict(env_prefix="EXECUTION_")

    simulated_delay_seconds: float = 2.0
    simulated_success_rate: float = 1.0  # probability in [0, 1]


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True
    update_interval: int = 5  # seconds between WebSocket pushes


@dataclass
class RuntimeConfig:
    """Mutable runtime config overlay. Non-None fields override BaseSettings values.

    Used by the dashboard to change the opportunity cutoff without restarting.
    """

    min_spread_threshold_pct: Decimal | None = None


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    engine: EngineSettings = EngineSettings()
    venues: VenueSettings = VenueSettings()
    stream: StreamSettings = StreamSettings()
    execution: ExecutionSettings = ExecutionSettings()
    dashboard: DashboardSettings = DashboardSettings()
