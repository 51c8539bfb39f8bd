"""Shared data models for the funding rate arbitrage engine.

All rates, spreads and trade amounts use Decimal. Rates are expressed in
percentage units: a raw fractional funding rate of 0.0001 is stored as 0.01.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Venue(str, Enum):
    """Trading venues providing funding rate data."""

    ASTER = "Aster"
    LIGHTER = "Lighter"
    VARIATIONAL = "Variational"
    BASED = "Based"


class ConnectionState(str, Enum):
    """Connectivity of the streaming venue, reported on every transition."""

    IDLE = "Idle"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    ERROR = "Error"


class PositionSide(str, Enum):
    """Direction of one leg of an arbitrage trade."""

    LONG = "long"
    SHORT = "short"


# symbol -> venue -> latest rate (None = not yet observed from that venue)
RateTable = dict[str, dict[Venue, Decimal | None]]


@dataclass(frozen=True)
class RateRecord:
    """A single funding rate observation from one venue."""

    symbol: str
    venue: Venue
    rate: Decimal
    observed_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Opportunity:
    """Profitable spread between two venues for the same symbol.

    Short the venue with the higher rate, long the venue with the lower one.
    """

    id: str
    symbol: str
    short_venue: Venue
    long_venue: Venue
    short_rate: Decimal
    long_rate: Decimal
    spread: Decimal
    computed_at: float

    @staticmethod
    def make_id(symbol: str, short_venue: Venue, long_venue: Venue) -> str:
        return f"{symbol}-{short_venue.value}-{long_venue.value}"


@dataclass(frozen=True)
class TradeRequest:
    """Descriptor handed to the execution boundary for a selected opportunity."""

    opportunity: Opportunity
    amount_per_leg: Decimal  # collateral in USDC per leg
    leverage: int
    stop_loss_pct: Decimal | None = None
    take_profit_pct: Decimal | None = None


@dataclass(frozen=True)
class LegOrder:
    """One side of a TradeRequest, routed to a single venue."""

    venue: Venue
    symbol: str
    side: PositionSide
    amount: Decimal
    leverage: int
    stop_loss_pct: Decimal | None = None
    take_profit_pct: Decimal | None = None


@dataclass
class LegResult:
    """Outcome of a single leg. Failures are captured, never raised."""

    venue: Venue
    side: PositionSide
    success: bool
    tx_hash: str | None = None
    error: str | None = None


@dataclass
class ExecutionResult:
    """Independent outcomes of both legs of an arbitrage trade."""

    short_leg: LegResult
    long_leg: LegResult

    @property
    def fully_filled(self) -> bool:
        return self.short_leg.success and self.long_leg.success
