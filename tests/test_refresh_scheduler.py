"""Tests for the refresh scheduler — polling, joins, stale-response handling."""

import asyncio

import pytest

from app.schemas.market import SpotQuote, TimeRange
from app.services.refresh_scheduler import RefreshScheduler


class GatedFeed:
    """Feed whose fetches block until the test releases them."""

    def __init__(self, make_snapshot):
        self.make_snapshot = make_snapshot
        self.gates: dict[TimeRange, asyncio.Event] = {}
        self.calls: list[TimeRange] = []

    def gate(self, time_range: TimeRange) -> asyncio.Event:
        return self.gates.setdefault(time_range, asyncio.Event())

    async def fetch(self, time_range, on_spot=None):
        self.calls.append(time_range)
        if on_spot is not None:
            on_spot(SpotQuote(price=4.8, change_24h=1.0, currency="usd", local_currency="kes"))
        await self.gate(time_range).wait()
        return self.make_snapshot(range=time_range)


@pytest.fixture
def gated_feed(make_snapshot):
    return GatedFeed(make_snapshot)


class TestRefresh:

    @pytest.mark.asyncio
    async def test_refresh_publishes_to_subscribers(self, stub_feed):
        sched = RefreshScheduler(feed=stub_feed, interval=60)
        received = []
        sched.subscribe(received.append)

        snapshot = await sched.refresh(TimeRange.ONE_WEEK)

        assert snapshot is not None
        assert sched.latest is snapshot
        assert received == [snapshot]
        assert stub_feed.calls == [TimeRange.ONE_WEEK]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, stub_feed):
        sched = RefreshScheduler(feed=stub_feed, interval=60)
        received = []
        unsubscribe = sched.subscribe(received.append)
        unsubscribe()
        await sched.refresh()
        assert received == []

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self, stub_feed):
        sched = RefreshScheduler(feed=stub_feed, interval=60)
        received = []

        def boom(_):
            raise RuntimeError("render failed")

        sched.subscribe(boom)
        sched.subscribe(received.append)
        await sched.refresh()
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_concurrent_refresh_same_range_is_joined(self, gated_feed):
        sched = RefreshScheduler(feed=gated_feed, interval=60)

        first = asyncio.create_task(sched.refresh(TimeRange.ONE_DAY))
        second = asyncio.create_task(sched.refresh(TimeRange.ONE_DAY))
        await asyncio.sleep(0)
        gated_feed.gate(TimeRange.ONE_DAY).set()

        a, b = await asyncio.gather(first, second)
        assert gated_feed.calls == [TimeRange.ONE_DAY]
        assert a is b

    @pytest.mark.asyncio
    async def test_spot_quote_is_exposed_before_history(self, gated_feed):
        sched = RefreshScheduler(feed=gated_feed, interval=60)
        task = asyncio.create_task(sched.refresh(TimeRange.ONE_DAY))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert sched.latest_spot is not None
        assert sched.latest_spot.change_24h == 1.0
        assert sched.latest is None

        gated_feed.gate(TimeRange.ONE_DAY).set()
        await task


class TestStaleResponses:

    @pytest.mark.asyncio
    async def test_older_request_completing_last_is_discarded(self, gated_feed):
        """A slow 1D fetch must not overwrite a newer 1W result."""
        sched = RefreshScheduler(feed=gated_feed, interval=60)
        received = []
        sched.subscribe(received.append)

        old = asyncio.create_task(sched.refresh(TimeRange.ONE_DAY))
        await asyncio.sleep(0)
        new = asyncio.create_task(sched.refresh(TimeRange.ONE_WEEK))
        await asyncio.sleep(0)

        gated_feed.gate(TimeRange.ONE_WEEK).set()
        new_result = await new
        gated_feed.gate(TimeRange.ONE_DAY).set()
        old_result = await old

        assert new_result.range == TimeRange.ONE_WEEK
        assert old_result.range == TimeRange.ONE_DAY
        assert sched.latest.range == TimeRange.ONE_WEEK
        assert [s.range for s in received] == [TimeRange.ONE_WEEK]

    @pytest.mark.asyncio
    async def test_in_order_completion_applies_both(self, gated_feed):
        sched = RefreshScheduler(feed=gated_feed, interval=60)

        old = asyncio.create_task(sched.refresh(TimeRange.ONE_DAY))
        await asyncio.sleep(0)
        new = asyncio.create_task(sched.refresh(TimeRange.ONE_WEEK))
        await asyncio.sleep(0)

        gated_feed.gate(TimeRange.ONE_DAY).set()
        assert await old is not None
        gated_feed.gate(TimeRange.ONE_WEEK).set()
        assert await new is not None
        assert sched.latest.range == TimeRange.ONE_WEEK


class TestTimer:

    @pytest.mark.asyncio
    async def test_start_refreshes_immediately_and_periodically(self, stub_feed):
        sched = RefreshScheduler(feed=stub_feed, interval=0.01)
        sched.start(TimeRange.ONE_MONTH)
        await asyncio.sleep(0.05)
        await sched.stop()

        assert len(stub_feed.calls) >= 2
        assert set(stub_feed.calls) == {TimeRange.ONE_MONTH}
        assert not sched.running

    @pytest.mark.asyncio
    async def test_set_range_restarts_timer(self, stub_feed):
        sched = RefreshScheduler(feed=stub_feed, interval=60)
        sched.start(TimeRange.ONE_DAY)
        await asyncio.sleep(0.01)
        sched.set_range(TimeRange.ONE_YEAR)
        await asyncio.sleep(0.01)
        await sched.stop()

        assert sched.range == TimeRange.ONE_YEAR
        assert stub_feed.calls == [TimeRange.ONE_DAY, TimeRange.ONE_YEAR]

    @pytest.mark.asyncio
    async def test_set_same_range_keeps_timer(self, stub_feed):
        sched = RefreshScheduler(feed=stub_feed, interval=60)
        sched.start(TimeRange.ONE_DAY)
        await asyncio.sleep(0.01)
        sched.set_range(TimeRange.ONE_DAY)
        await asyncio.sleep(0.01)
        await sched.stop()
        assert stub_feed.calls == [TimeRange.ONE_DAY]

    @pytest.mark.asyncio
    async def test_range_switch_does_not_cancel_in_flight_fetch(self, gated_feed):
        sched = RefreshScheduler(feed=gated_feed, interval=60)
        sched.start(TimeRange.ONE_DAY)
        await asyncio.sleep(0.01)

        sched.set_range(TimeRange.ONE_WEEK)
        await asyncio.sleep(0.01)

        # 1D fetch is still outstanding; finish it after the newer 1W one
        gated_feed.gate(TimeRange.ONE_WEEK).set()
        await asyncio.sleep(0.01)
        gated_feed.gate(TimeRange.ONE_DAY).set()
        await asyncio.sleep(0.01)
        await sched.stop()

        assert gated_feed.calls == [TimeRange.ONE_DAY, TimeRange.ONE_WEEK]
        assert sched.latest.range == TimeRange.ONE_WEEK
