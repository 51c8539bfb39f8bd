"""Refresh scheduler -- drives poll venues and owns the stream lifecycle.

Each tick fires every poll adapter concurrently and merges the concatenation
of whatever came back as a single batch. The first tick runs immediately on
start. A failed venue simply contributes nothing until the next tick.
"""

import asyncio
import time

from fundarb.logging import get_logger
from fundarb.market_data.aggregator import RateAggregator
from fundarb.models import RateRecord
from fundarb.venues.base import PollVenueAdapter, StreamVenueAdapter

logger = get_logger(__name__)


class Scheduler:
    """Runs the poll loop and starts/stops the stream adapter.

    Args:
        aggregator: Destination for every merged batch.
        poll_adapters: HTTP venues polled on each tick.
        stream_adapter: Optional push venue, connected once at start.
        refresh_interval: Seconds between poll ticks.
    """

    def __init__(
        self,
        aggregator: RateAggregator,
        poll_adapters: list[PollVenueAdapter],
        stream_adapter: StreamVenueAdapter | None = None,
        refresh_interval: float = 30.0,
    ) -> None:
        self._aggregator = aggregator
        self._poll_adapters = list(poll_adapters)
        self._stream_adapter = stream_adapter
        self._refresh_interval = refresh_interval
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._stream_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._tick_count = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    async def start(self) -> None:
        """Start polling (first tick immediately) and connect the stream."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        if self._stream_adapter is not None:
            self._stream_task = asyncio.create_task(self._stream_adapter.connect())
        logger.info(
            "scheduler_started",
            poll_venues=[a.venue.value for a in self._poll_adapters],
            stream_venue=self._stream_adapter.venue.value if self._stream_adapter else None,
            refresh_interval=self._refresh_interval,
        )

    async def stop(self) -> None:
        """Stop polling and gracefully disconnect the stream."""
        self._running = False
        for task in (self._task, self._stream_task):
            if task is None:
                continue
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            elif not task.cancelled() and task.exception() is not None:
                logger.warning("scheduler_task_failed", error=repr(task.exception()))
        self._task = None
        self._stream_task = None

        if self._stream_adapter is not None:
            await self._stream_adapter.disconnect()
        logger.info("scheduler_stopped", ticks=self._tick_count)

    async def close(self) -> None:
        """Release network resources held by every adapter."""
        for adapter in self._poll_adapters:
            await adapter.close()
        if self._stream_adapter is not None:
            await self._stream_adapter.close()

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("scheduler_tick_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._refresh_interval)

    async def tick(self) -> list[RateRecord]:
        """Fetch all poll venues concurrently and merge the combined batch.

        Returns:
            The merged batch.
        """
        started = time.monotonic()
        results = await asyncio.gather(
            *(adapter.fetch() for adapter in self._poll_adapters),
            return_exceptions=True,
        )

        batch: list[RateRecord] = []
        per_venue: dict[str, int] = {}
        for adapter, result in zip(self._poll_adapters, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(
                    "venue_fetch_raised",
                    venue=adapter.venue.value,
                    error=repr(result),
                )
                per_venue[adapter.venue.value] = 0
                continue
            batch.extend(result)
            per_venue[adapter.venue.value] = len(result)

        await self._aggregator.merge(batch)
        self._tick_count += 1
        logger.info(
            "poll_tick_complete",
            tick=self._tick_count,
            records=len(batch),
            per_venue=per_venue,
            elapsed_ms=round((time.monotonic() - started) * 1000),
        )
        return batch
