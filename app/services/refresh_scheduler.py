"""
Refresh scheduler — keeps the latest market snapshot current.

Re-fetches on range selection and every PRICE_REFRESH_INTERVAL_SECONDS.
Switching range cancels the timer but never the in-flight network call;
each fetch carries a sequence number and a result is applied only if no
later-started fetch has already been applied.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from app.config import settings
from app.schemas.market import MarketSnapshot, SpotQuote, TimeRange
from app.services.market_feed import MarketDataFeed

logger = logging.getLogger(__name__)

Subscriber = Callable[[MarketSnapshot], None]


class RefreshScheduler:
    """Polls the market data feed and publishes snapshots to subscribers."""

    def __init__(
        self,
        feed: MarketDataFeed | None = None,
        interval: float | None = None,
    ):
        self.feed = feed or MarketDataFeed()
        self.interval = interval if interval is not None else settings.PRICE_REFRESH_INTERVAL_SECONDS
        self.range = TimeRange.ONE_DAY
        self.latest: MarketSnapshot | None = None
        self.latest_spot: SpotQuote | None = None

        self._subscribers: list[Subscriber] = []
        self._timer: asyncio.Task | None = None
        self._in_flight: dict[TimeRange, asyncio.Task] = {}
        self._next_seq = 0
        self._applied_seq = 0
        self._spot_seq = 0

    # ── Subscribers ──────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, snapshot: MarketSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber %r failed", callback)

    # ── Fetching ─────────────────────────────────────────────────────

    async def refresh(self, time_range: TimeRange | None = None) -> MarketSnapshot:
        """
        Fetch once for *time_range* (default: current range).

        Joins an outstanding fetch for the same range instead of starting
        another. Always returns the snapshot fetched for *time_range*; a
        stale result is handed back to its caller but never becomes
        ``latest`` or reaches subscribers.
        """
        time_range = time_range or self.range
        task = self._in_flight.get(time_range)
        if task is None or task.done():
            self._next_seq += 1
            task = asyncio.create_task(self._fetch(time_range, self._next_seq))
            self._in_flight[time_range] = task
        return await asyncio.shield(task)

    async def _fetch(self, time_range: TimeRange, seq: int) -> MarketSnapshot:
        def on_spot(spot: SpotQuote) -> None:
            if seq > self._spot_seq:
                self._spot_seq = seq
                self.latest_spot = spot

        try:
            snapshot = await self.feed.fetch(time_range, on_spot=on_spot)
        finally:
            if self._in_flight.get(time_range) is asyncio.current_task():
                del self._in_flight[time_range]

        if seq <= self._applied_seq:
            logger.info(
                "Discarding stale %s snapshot (seq %d <= applied %d)",
                time_range.value, seq, self._applied_seq,
            )
            return snapshot

        self._applied_seq = seq
        self.latest = snapshot
        self._publish(snapshot)
        return snapshot

    # ── Timer ────────────────────────────────────────────────────────

    async def _run(self, time_range: TimeRange) -> None:
        while True:
            try:
                await self.refresh(time_range)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Market refresh for %s failed", time_range.value)
            await asyncio.sleep(self.interval)

    def start(self, time_range: TimeRange | None = None) -> None:
        """Start (or restart) the periodic refresh for *time_range*."""
        if time_range is not None:
            self.range = time_range
        self._cancel_timer()
        self._timer = asyncio.create_task(self._run(self.range))
        logger.info(
            "Market refresh started for %s every %ss", self.range.value, self.interval,
        )

    def set_range(self, time_range: TimeRange) -> None:
        """Switch range: clear the old timer and start a new one."""
        if time_range == self.range and self._timer is not None and not self._timer.done():
            return
        self.start(time_range)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def stop(self) -> None:
        """Cancel the timer. In-flight fetches are left to finish."""
        timer = self._timer
        self._cancel_timer()
        if timer is not None:
            try:
                await timer
            except asyncio.CancelledError:
                pass

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()


refresh_scheduler = RefreshScheduler()
