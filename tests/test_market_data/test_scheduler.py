"""Tests for Scheduler -- concurrent poll ticks and stream lifecycle.

All adapters are mocks; no network access.
"""

import asyncio
import gc
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from fundarb.market_data.aggregator import RateAggregator
from fundarb.market_data.opportunity_engine import OpportunityEngine
from fundarb.market_data.scheduler import Scheduler
from fundarb.models import Venue
from fundarb.venues.base import PollVenueAdapter, StreamVenueAdapter


def _poll_adapter(venue: Venue, **fetch_kwargs) -> MagicMock:
    adapter = MagicMock(spec=PollVenueAdapter)
    adapter.venue = venue
    adapter.fetch = AsyncMock(**fetch_kwargs)
    adapter.close = AsyncMock()
    return adapter


def _stream_adapter() -> MagicMock:
    adapter = MagicMock(spec=StreamVenueAdapter)
    adapter.venue = Venue.LIGHTER
    adapter.connect = AsyncMock()
    adapter.disconnect = AsyncMock()
    adapter.close = AsyncMock()
    return adapter


async def _wait_for(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


@pytest.fixture
def aggregator() -> RateAggregator:
    return RateAggregator(OpportunityEngine(), Decimal("0.005"))


class TestTick:
    @pytest.mark.asyncio
    async def test_tick_merges_all_venues_as_one_batch(
        self, aggregator: RateAggregator, make_record
    ) -> None:
        aster = _poll_adapter(
            Venue.ASTER, return_value=[make_record("BTCUSDT", Venue.ASTER, "0.02")]
        )
        based = _poll_adapter(
            Venue.BASED, return_value=[make_record("BTCUSDT", Venue.BASED, "-0.01")]
        )
        scheduler = Scheduler(aggregator, [aster, based])

        batch = await scheduler.tick()

        assert len(batch) == 2
        assert aggregator.merge_count == 1
        assert [o.id for o in aggregator.get_opportunities()] == ["BTCUSDT-Aster-Based"]

    @pytest.mark.asyncio
    async def test_failing_venue_does_not_block_others(
        self, aggregator: RateAggregator, make_record
    ) -> None:
        broken = _poll_adapter(Venue.ASTER, side_effect=RuntimeError("boom"))
        timed_out = _poll_adapter(Venue.VARIATIONAL, side_effect=asyncio.TimeoutError())
        healthy = _poll_adapter(
            Venue.BASED, return_value=[make_record("ETHUSDT", Venue.BASED, "0.01")]
        )
        scheduler = Scheduler(aggregator, [broken, timed_out, healthy])

        batch = await scheduler.tick()

        assert [r.venue for r in batch] == [Venue.BASED]
        assert aggregator.get_rates() == {"ETHUSDT": {Venue.BASED: Decimal("0.01")}}

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self, aggregator: RateAggregator) -> None:
        running = 0
        peak = 0

        async def slow_fetch() -> list:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return []

        adapters = [_poll_adapter(v, side_effect=slow_fetch) for v in (Venue.ASTER, Venue.BASED)]
        await Scheduler(aggregator, adapters).tick()

        assert peak == 2


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_first_tick_fires_immediately(self, aggregator: RateAggregator) -> None:
        adapter = _poll_adapter(Venue.ASTER, return_value=[])
        scheduler = Scheduler(aggregator, [adapter], refresh_interval=3600)

        await scheduler.start()
        try:
            await _wait_for(lambda: scheduler.tick_count == 1)
        finally:
            await scheduler.stop()

        adapter.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ticks_repeat_on_interval(self, aggregator: RateAggregator) -> None:
        adapter = _poll_adapter(Venue.ASTER, return_value=[])
        scheduler = Scheduler(aggregator, [adapter], refresh_interval=0.01)

        await scheduler.start()
        try:
            await _wait_for(lambda: scheduler.tick_count >= 3)
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stream_connected_once_and_disconnected_on_stop(
        self, aggregator: RateAggregator
    ) -> None:
        stream = _stream_adapter()
        scheduler = Scheduler(aggregator, [], stream_adapter=stream, refresh_interval=3600)

        await scheduler.start()
        await _wait_for(lambda: stream.connect.await_count == 1)
        await scheduler.stop()

        stream.connect.assert_awaited_once()
        stream.disconnect.assert_awaited_once()
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_double_start_is_noop(self, aggregator: RateAggregator) -> None:
        stream = _stream_adapter()
        scheduler = Scheduler(aggregator, [], stream_adapter=stream, refresh_interval=3600)

        await scheduler.start()
        await scheduler.start()
        await _wait_for(lambda: stream.connect.await_count >= 1)
        await scheduler.stop()

        assert stream.connect.await_count == 1

    @pytest.mark.asyncio
    async def test_close_releases_adapters(self, aggregator: RateAggregator) -> None:
        adapter = _poll_adapter(Venue.ASTER, return_value=[])
        stream = _stream_adapter()
        scheduler = Scheduler(aggregator, [adapter], stream_adapter=stream)

        await scheduler.close()

        adapter.close.assert_awaited_once()
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_stream_connect_collected_on_stop(
        self, aggregator: RateAggregator
    ) -> None:
        """A stream connect that already raised is reaped, not left unretrieved."""
        stream = _stream_adapter()
        stream.connect = AsyncMock(side_effect=RuntimeError("connect blew up"))
        scheduler = Scheduler(aggregator, [], stream_adapter=stream, refresh_interval=3600)

        loop = asyncio.get_running_loop()
        unhandled: list[dict] = []
        loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
        try:
            await scheduler.start()
            await _wait_for(lambda: scheduler._stream_task.done())
            await scheduler.stop()
            gc.collect()
        finally:
            loop.set_exception_handler(None)

        assert unhandled == []
        stream.disconnect.assert_awaited_once()
