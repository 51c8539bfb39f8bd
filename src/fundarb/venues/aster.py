"""Aster funding rates via the Binance-compatible premiumIndex endpoint."""

from typing import Any

import httpx

from fundarb.exceptions import PayloadError
from fundarb.logging import get_logger
from fundarb.models import RateRecord, Venue
from fundarb.venues.base import normalize_symbol, to_percent
from fundarb.venues.http import HttpPollAdapter

logger = get_logger(__name__)


class AsterAdapter(HttpPollAdapter):
    """Polls ``GET /fapi/v1/premiumIndex``.

    Response is a JSON array of ``{"symbol": "BTCUSDT", "lastFundingRate": "0.0001", ...}``.
    Markets reporting exactly zero are inactive on Aster and are dropped.
    """

    venue = Venue.ASTER

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(client, timeout)
        self._url = url

    async def _request(self) -> httpx.Response:
        return await self._client.get(self._url)

    def parse(self, payload: Any, observed_at: float) -> list[RateRecord]:
        if not isinstance(payload, list):
            raise PayloadError(f"Expected array, got {type(payload).__name__}")

        records: list[RateRecord] = []
        skipped = 0
        for item in payload:
            if not isinstance(item, dict):
                skipped += 1
                continue
            try:
                symbol = normalize_symbol(item["symbol"])
                rate = to_percent(item.get("lastFundingRate"))
            except (KeyError, PayloadError):
                skipped += 1
                continue
            if rate == 0:
                continue
            records.append(
                RateRecord(symbol=symbol, venue=self.venue, rate=rate, observed_at=observed_at)
            )

        if skipped:
            logger.debug("aster_entries_skipped", count=skipped)
        return records
