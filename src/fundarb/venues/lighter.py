"""Lighter funding rate stream -- websocket push feed with market discovery.

Lighter identifies markets by numeric index on the stream. The adapter keeps
its own id -> symbol map, seeded from a static table and refreshed from the
order-book listing on every connect. Unknown ids are surfaced as
``MARKET_<id>`` rather than dropped.

Every inbound update refreshes a per-symbol last-known-rate cache and the
whole cache is emitted as one batch. Downstream merge is last-write-wins per
(symbol, venue), so a full emission keeps the aggregated view consistent even
when individual frames are missed.

The adapter never reconnects by itself: stream errors and closes are reported
as ConnectionState.ERROR and the owner decides what to do.
"""

import asyncio
import json
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from fundarb.config import StreamSettings
from fundarb.exceptions import DiscoveryError, PayloadError
from fundarb.logging import get_logger
from fundarb.models import ConnectionState, RateRecord, Venue
from fundarb.venues.base import (
    RatesCallback,
    StatusCallback,
    StreamVenueAdapter,
    normalize_symbol,
    to_percent,
)

logger = get_logger(__name__)

# Fallback market index ordering, used until discovery succeeds
STATIC_MARKET_MAP: dict[int, str] = {
    0: "BTCUSDT",
    1: "ETHUSDT",
    2: "XPLUSDT",
    3: "SOLUSDT",
    4: "MATICUSDT",
    5: "AVAXUSDT",
    6: "ARBUSDT",
    7: "OPUSDT",
    8: "BNBUSDT",
    9: "LINKUSDT",
}


class MarketDiscoveryMap:
    """Market index -> canonical symbol mapping.

    Merges are key-by-key: discovered entries overwrite seeded or previously
    discovered ones, and ids absent from a discovery response are kept.
    """

    def __init__(self, seed: Mapping[int, str] | None = None) -> None:
        self._markets: dict[int, str] = dict(seed or {})

    def resolve(self, market_id: int) -> str:
        return self._markets.get(market_id, f"MARKET_{market_id}")

    def merge(self, discovered: Mapping[int, str]) -> None:
        self._markets.update(discovered)

    def highest_id(self) -> int | None:
        return max(self._markets, default=None)

    def snapshot(self) -> dict[int, str]:
        return dict(self._markets)

    def __len__(self) -> int:
        return len(self._markets)


def parse_order_books(payload: Any) -> dict[int, str]:
    """Extract ``{market_id: symbol}`` from an order-book listing.

    Accepts both ``{"order_books": [{"id": 0, "symbol": "BTC-USDC"}]}`` and
    ``{"order_books": {"0": {"symbol": "BTC-USDC"}}}``.

    Raises:
        DiscoveryError: If the listing is missing or yields no usable market.
    """
    books = payload.get("order_books") if isinstance(payload, dict) else None

    if isinstance(books, list):
        entries = [
            (book.get("id", book.get("market_id")), book.get("symbol"))
            for book in books
            if isinstance(book, dict)
        ]
    elif isinstance(books, dict):
        entries = [
            (key, book.get("symbol") if isinstance(book, dict) else None)
            for key, book in books.items()
        ]
    else:
        raise DiscoveryError("Response has no order_books listing")

    discovered: dict[int, str] = {}
    for raw_id, raw_symbol in entries:
        try:
            discovered[int(raw_id)] = normalize_symbol(raw_symbol)
        except (TypeError, ValueError, PayloadError):
            continue

    if not discovered:
        raise DiscoveryError("order_books listing contained no usable markets")
    return discovered


def parse_stats_message(raw: str | bytes, topic: str) -> tuple[int, Decimal] | None:
    """Decode a market stats frame into ``(market_id, rate_pct)``.

    Returns None for anything that is not a well-formed stats update: other
    message types, missing stats block, missing market id or funding rate.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    if data.get("type") not in (f"update/{topic}", f"subscribed/{topic}"):
        return None

    stats = data.get("market_stats") or data.get("stats")
    if not isinstance(stats, dict):
        return None

    market_id = data.get("market_index")
    if market_id is None:
        market_id = stats.get("market_id")
    if market_id is None or isinstance(market_id, bool):
        return None
    try:
        market_id = int(market_id)
    except (TypeError, ValueError):
        return None

    raw_rate = stats.get("funding_rate")
    if raw_rate in (None, ""):
        raw_rate = stats.get("current_funding_rate")
    try:
        rate = to_percent(raw_rate)
    except PayloadError:
        return None
    return market_id, rate


class LighterStream(StreamVenueAdapter):
    """Websocket adapter for Lighter market stats.

    Args:
        settings: Stream endpoints, timeouts and subscription range.
        on_rates: Awaited with the full rate cache after every update.
        on_status: Called on every connection state transition.
        http_client: Client used for discovery; created (and owned) if omitted.
        connector: Coroutine factory opening the socket, ``websockets.connect``
            by default. Called as ``connector(url, open_timeout=...)``.
    """

    venue = Venue.LIGHTER

    def __init__(
        self,
        settings: StreamSettings,
        on_rates: RatesCallback,
        on_status: StatusCallback,
        http_client: httpx.AsyncClient | None = None,
        connector: Callable[..., Any] | None = None,
    ) -> None:
        self._settings = settings
        self._on_rates = on_rates
        self._on_status = on_status
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.discovery_timeout_seconds
        )
        self._connector = connector or websockets.connect

        self._markets = MarketDiscoveryMap(STATIC_MARKET_MAP)
        self._rate_cache: dict[str, Decimal] = {}
        self._lock = asyncio.Lock()

        self._state = ConnectionState.IDLE
        self._ws: Any = None
        self._reader: asyncio.Task | None = None  # type: ignore[type-arg]
        self._subscribed: list[int] = []
        self._closing = False
        self._generation = 0  # bumped by every connect() and disconnect()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def subscribed_ids(self) -> list[int]:
        return list(self._subscribed)

    def get_market_map(self) -> dict[int, str]:
        return self._markets.snapshot()

    def get_cached_rates(self) -> dict[str, Decimal]:
        return dict(self._rate_cache)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        logger.info(
            "lighter_state_changed", previous=previous.value, state=state.value
        )
        self._on_status(state)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def refresh_markets(self) -> bool:
        """Best-effort refresh of the market map from the order-book listing.

        Returns:
            True if the map was updated, False if the previous map was kept.
        """
        try:
            response = await self._http.get(
                self._settings.discovery_url,
                timeout=self._settings.discovery_timeout_seconds,
            )
            response.raise_for_status()
            discovered = parse_order_books(response.json())
        except (httpx.HTTPError, ValueError, DiscoveryError) as e:
            logger.warning(
                "lighter_discovery_failed",
                error=str(e) or type(e).__name__,
                known_markets=len(self._markets),
            )
            return False

        async with self._lock:
            self._markets.merge(discovered)
            known = len(self._markets)
        logger.info("lighter_discovery_ok", discovered=len(discovered), known_markets=known)
        return True

    def subscription_ids(self) -> list[int]:
        """Market ids to subscribe: every known id plus a safety margin."""
        highest = self._markets.highest_id()
        top = max(highest if highest is not None else 0, self._settings.subscribe_floor_id)
        return list(range(top + self._settings.subscribe_margin + 1))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Discover markets, open the socket, subscribe and start reading.

        Failures are reported through ConnectionState.ERROR, never raised.
        A disconnect() issued while this is in flight wins: the attempt is
        abandoned at the next await point and any socket it opened is closed.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.warning("lighter_already_connected", state=self._state.value)
            return

        await self._teardown()
        self._closing = False
        self._generation += 1
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)

        await self.refresh_markets()
        if generation != self._generation:
            logger.info("lighter_connect_abandoned", stage="discovery")
            return

        try:
            ws = await self._connector(
                self._settings.ws_url,
                open_timeout=self._settings.open_timeout_seconds,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            logger.warning("lighter_open_failed", error=str(e) or type(e).__name__)
            if generation == self._generation:
                self._set_state(ConnectionState.ERROR)
            return

        if generation != self._generation:
            logger.info("lighter_connect_abandoned", stage="open")
            await self._close_socket(ws)
            return

        self._ws = ws
        self._set_state(ConnectionState.CONNECTED)

        try:
            ids = await self._subscribe_all(ws, generation)
        except (OSError, WebSocketException) as e:
            if generation != self._generation:
                return
            logger.warning("lighter_subscribe_failed", error=str(e) or type(e).__name__)
            await self._teardown()
            self._set_state(ConnectionState.ERROR)
            return

        if generation != self._generation:
            logger.info("lighter_connect_abandoned", stage="subscribe")
            return

        self._subscribed = ids
        self._reader = asyncio.create_task(self._read_loop())

    async def disconnect(self) -> None:
        """Close the stream, cancel the reader and return to Idle."""
        self._closing = True
        self._generation += 1
        await self._teardown()
        self._set_state(ConnectionState.IDLE)
        logger.info("lighter_disconnected")

    async def close(self) -> None:
        await self.disconnect()
        if self._owns_client:
            await self._http.aclose()

    async def _teardown(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_socket(ws)

        self._subscribed = []

    @staticmethod
    async def _close_socket(ws: Any) -> None:
        try:
            await ws.close()
        except (OSError, WebSocketException):
            logger.debug("lighter_close_error", exc_info=True)

    async def _subscribe_all(self, ws: Any, generation: int) -> list[int]:
        topic = self._settings.channel_topic
        ids = self.subscription_ids()
        for market_id in ids:
            if generation != self._generation:
                return []
            await ws.send(
                json.dumps({"type": "subscribe", "channel": f"{topic}/{market_id}"})
            )
        logger.info("lighter_subscribed", channels=len(ids), highest_id=ids[-1])
        return ids

    async def _read_loop(self) -> None:
        ws = self._ws
        try:
            async for raw in ws:
                try:
                    await self.handle_message(raw)
                except Exception:
                    logger.warning("lighter_message_error", exc_info=True)
        except ConnectionClosed as e:
            logger.warning("lighter_stream_closed", code=getattr(e.rcvd, "code", None))
        except (OSError, WebSocketException) as e:
            logger.warning("lighter_stream_error", error=str(e) or type(e).__name__)

        if not self._closing:
            logger.warning("lighter_stream_ended")
            self._set_state(ConnectionState.ERROR)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_message(self, raw: str | bytes) -> list[RateRecord] | None:
        """Apply one inbound frame and emit the full rate cache.

        Returns:
            The emitted batch, or None if the frame was ignored.
        """
        update = parse_stats_message(raw, self._settings.channel_topic)
        if update is None:
            return None
        market_id, rate = update

        async with self._lock:
            symbol = self._markets.resolve(market_id)
            self._rate_cache[symbol] = rate
            now = time.time()
            batch = [
                RateRecord(symbol=sym, venue=self.venue, rate=value, observed_at=now)
                for sym, value in self._rate_cache.items()
            ]

        await self._on_rates(batch)
        return batch
