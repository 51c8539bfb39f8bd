"""Abstract venue adapter interfaces.

Defines the contract for every funding rate source. The aggregator and the
opportunity engine only ever see RateRecord batches, keeping venue-specific
payload formats isolated in the concrete adapters.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from decimal import Decimal, DecimalException

from fundarb.exceptions import PayloadError
from fundarb.models import ConnectionState, RateRecord, Venue

CANONICAL_QUOTE = "USDT"

# Checked in order: USDT/USDC before USD so "BTCUSDC" does not become "BTCC"
_QUOTE_SUFFIXES = ("USDT", "USDC", "PERP", "USD")
_SEPARATORS = re.compile(r"[-_/:\s]")

# Largest plausible funding rate per interval, in percent
MAX_ABS_RATE_PCT = Decimal("100")

RatesCallback = Callable[[list[RateRecord]], Awaitable[None]]
StatusCallback = Callable[[ConnectionState], None]


def normalize_symbol(raw: str) -> str:
    """Normalize a venue symbol to the canonical ``<BASE>USDT`` form.

    Separators are stripped, the symbol is upper-cased, and a trailing quote
    asset is replaced by USDT (USDC and USD markets are treated 1:1 for
    funding comparison). Bare base assets ("BTC") get the suffix appended.

    Raises:
        PayloadError: If the symbol is empty after normalization.
    """
    if raw is None:
        raise PayloadError("Missing symbol")
    symbol = _SEPARATORS.sub("", str(raw)).upper()
    if not symbol:
        raise PayloadError(f"Empty symbol: {raw!r}")
    for quote in _QUOTE_SUFFIXES:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            symbol = symbol[: -len(quote)]
            break
    return f"{symbol}{CANONICAL_QUOTE}"


def to_percent(raw_rate: object) -> Decimal:
    """Convert a raw fractional funding rate (str/number) to percentage units.

    Raises:
        PayloadError: If the value is missing, not a finite number, or larger
            in magnitude than MAX_ABS_RATE_PCT once converted.
    """
    if raw_rate is None or raw_rate == "":
        raise PayloadError("Missing funding rate")
    try:
        value = Decimal(str(raw_rate))
        if not value.is_finite():
            raise PayloadError(f"Non-finite funding rate: {raw_rate!r}")
        percent = value * 100
    except (DecimalException, ValueError) as e:
        raise PayloadError(f"Invalid funding rate: {raw_rate!r}") from e
    if abs(percent) > MAX_ABS_RATE_PCT:
        raise PayloadError(f"Funding rate out of range: {raw_rate!r}")
    return percent


class PollVenueAdapter(ABC):
    """Point-in-time snapshot source for a single venue.

    Implementations must never raise from fetch(): a failing venue returns an
    empty list so the scheduler can still merge the other venues.
    """

    venue: Venue

    @abstractmethod
    async def fetch(self) -> list[RateRecord]:
        """Fetch and normalize the current funding rates of this venue."""
        ...

    async def close(self) -> None:
        """Release network resources held by the adapter."""


class StreamVenueAdapter(ABC):
    """Long-lived push source for a single venue.

    Rate batches are delivered through the ``on_rates`` callback and every
    connection state transition through ``on_status``.
    """

    venue: Venue

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Last reported connection state."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Discover markets, open the stream and subscribe."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the stream and release the socket; returns to Idle."""
        ...

    async def close(self) -> None:
        """Disconnect and release any remaining resources."""
        await self.disconnect()
