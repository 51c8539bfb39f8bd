"""Based funding rates, served by the Hyperliquid info endpoint.

Hyperliquid funding is hourly; rates are passed through unscaled (only
converted to percentage) so they compare on the venue's own period.
"""

from typing import Any

import httpx

from fundarb.exceptions import PayloadError
from fundarb.logging import get_logger
from fundarb.models import RateRecord, Venue
from fundarb.venues.base import normalize_symbol, to_percent
from fundarb.venues.http import HttpPollAdapter

logger = get_logger(__name__)

_META_AND_ASSET_CTXS = {"type": "metaAndAssetCtxs"}


class BasedAdapter(HttpPollAdapter):
    """Polls ``POST /info {"type": "metaAndAssetCtxs"}``.

    The response is ``[{"universe": [{"name": "BTC"}, ...]}, [{"funding": "0.0000125"}, ...]]``
    where the two arrays are aligned by index.
    """

    venue = Venue.BASED

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(client, timeout)
        self._url = url

    async def _request(self) -> httpx.Response:
        return await self._client.post(self._url, json=_META_AND_ASSET_CTXS)

    def parse(self, payload: Any, observed_at: float) -> list[RateRecord]:
        if not isinstance(payload, list) or len(payload) < 2:
            raise PayloadError("Expected [meta, assetCtxs] pair")

        meta, contexts = payload[0], payload[1]
        universe = meta.get("universe") if isinstance(meta, dict) else None
        if not isinstance(universe, list) or not isinstance(contexts, list):
            raise PayloadError("Malformed universe or asset contexts")

        records: list[RateRecord] = []
        for index, asset in enumerate(universe):
            ctx = contexts[index] if index < len(contexts) else None
            if not isinstance(asset, dict) or not isinstance(ctx, dict):
                continue
            try:
                symbol = normalize_symbol(asset["name"])
                rate = to_percent(ctx.get("funding"))
            except (KeyError, PayloadError):
                logger.debug("based_asset_skipped", index=index)
                continue
            records.append(
                RateRecord(symbol=symbol, venue=self.venue, rate=rate, observed_at=observed_at)
            )
        return records
