"""Shared httpx plumbing for poll-based venues.

Concrete adapters only implement ``_request`` (issue the call) and
``parse`` (turn the decoded JSON into RateRecords). Error containment lives
here so every poll venue degrades the same way: log and return no data.
"""

import time
from abc import abstractmethod
from typing import Any

import httpx

from fundarb.exceptions import PayloadError, VenueError
from fundarb.logging import get_logger
from fundarb.models import RateRecord
from fundarb.venues.base import PollVenueAdapter

logger = get_logger(__name__)


class HttpPollAdapter(PollVenueAdapter):
    """Poll adapter backed by a shared or owned ``httpx.AsyncClient``.

    Args:
        client: Optional client to use. When omitted the adapter creates
            (and later closes) its own client with the given timeout.
        timeout: Request timeout in seconds for an owned client.
    """

    def __init__(
        self, client: httpx.AsyncClient | None = None, timeout: float = 10.0
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self) -> list[RateRecord]:
        """Fetch a snapshot. Transport and schema errors yield an empty list."""
        started = time.monotonic()
        try:
            response = await self._request()
            if response.is_error:
                raise VenueError(f"HTTP {response.status_code} from {response.url}")
            try:
                payload = response.json()
            except ValueError as e:
                raise PayloadError("Response body is not JSON") from e
            records = self.parse(payload, observed_at=time.time())
        except httpx.HTTPError as e:
            logger.warning(
                "venue_fetch_failed", venue=self.venue.value, error=repr(e)
            )
            return []
        except (VenueError, PayloadError) as e:
            logger.warning(
                "venue_fetch_failed", venue=self.venue.value, error=str(e)
            )
            return []

        logger.debug(
            "venue_fetch_ok",
            venue=self.venue.value,
            count=len(records),
            elapsed_ms=round((time.monotonic() - started) * 1000),
        )
        return records

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @abstractmethod
    async def _request(self) -> httpx.Response:
        """Issue the venue request and return the raw response."""
        ...

    @abstractmethod
    def parse(self, payload: Any, observed_at: float) -> list[RateRecord]:
        """Convert a decoded payload into RateRecords.

        Malformed entries are skipped; a payload whose top-level shape is
        wrong raises PayloadError.
        """
        ...
