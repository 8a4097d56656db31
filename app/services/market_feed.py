"""
Market data feed — live WLD spot price and history with degraded fallback.

Architecture:
  - PriceProvider (protocol) defines the spot + history interface
  - MockPriceProvider returns deterministic data for development
  - CoinGeckoPriceProvider calls the public CoinGecko API
  - PRICE_FEED_MOCK=true (default) selects the mock provider

``MarketDataFeed.fetch`` never raises: any provider failure is logged
and replaced by a synthetic series flagged ``degraded=True``.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

import httpx

from app.config import settings
from app.schemas.market import MarketSnapshot, PricePoint, SpotQuote, TimeRange
from app.services.fallback_series import format_label, generate_fallback_series

logger = logging.getLogger(__name__)

# Provider lookback window (days) per range; 1H is trimmed from the 1-day window
RANGE_DAYS = {
    TimeRange.ONE_HOUR: 1,
    TimeRange.ONE_DAY: 1,
    TimeRange.ONE_WEEK: 7,
    TimeRange.ONE_MONTH: 30,
    TimeRange.ONE_YEAR: 365,
}

ONE_HOUR_WINDOW = timedelta(minutes=60)

# Mock data (deterministic for testing)
MOCK_SPOT_USD = 4.82
MOCK_SPOT_LOCAL = 680.0
MOCK_CHANGE_24H = 1.5


class PriceFeedError(Exception):
    """Raised by providers on transport, status or payload errors."""
    pass


# ---------------------------------------------------------------------------
# Provider protocol
# ---------------------------------------------------------------------------


class PriceProvider(Protocol):
    async def fetch_spot(self) -> SpotQuote: ...

    async def fetch_history(self, days: int) -> list[tuple[datetime, float]]:
        """Return (timestamp, price) pairs, oldest first."""
        ...


class MockPriceProvider:
    """Deterministic spot price and a flat-ish 24-point history."""

    async def fetch_spot(self) -> SpotQuote:
        return SpotQuote(
            price=MOCK_SPOT_USD,
            local_price=MOCK_SPOT_LOCAL,
            change_24h=MOCK_CHANGE_24H,
            currency=settings.PRICE_QUOTE_CURRENCY,
            local_currency=settings.LOCAL_CURRENCY,
        )

    async def fetch_history(self, days: int) -> list[tuple[datetime, float]]:
        now = datetime.now(timezone.utc)
        step = timedelta(days=days) / 24
        return [
            (now - step * (23 - i), round(4.65 + i * 0.0075, 4))
            for i in range(24)
        ]


class CoinGeckoPriceProvider:
    """Fetch WLD spot and market-chart data from CoinGecko."""

    HEADERS = {"Accept": "application/json"}

    def __init__(
        self,
        base_url: str | None = None,
        asset_id: str | None = None,
        currency: str | None = None,
        local_currency: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or settings.PRICE_API_URL).rstrip("/")
        self._asset_id = asset_id or settings.PRICE_ASSET_ID
        self._currency = (currency or settings.PRICE_QUOTE_CURRENCY).lower()
        self._local_currency = (local_currency or settings.LOCAL_CURRENCY).lower()
        self._timeout = timeout or settings.PRICE_FEED_TIMEOUT_SECONDS
        self._transport = transport

    async def _get_json(self, path: str, params: dict) -> dict:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport,
        ) as client:
            resp = await client.get(
                f"{self._base_url}{path}", params=params, headers=self.HEADERS,
            )
            resp.raise_for_status()
            data = resp.json()
        if not isinstance(data, dict):
            raise PriceFeedError(f"Unexpected payload type: {type(data).__name__}")
        return data

    async def fetch_spot(self) -> SpotQuote:
        data = await self._get_json(
            "/simple/price",
            {
                "ids": self._asset_id,
                "vs_currencies": f"{self._currency},{self._local_currency}",
                "include_24hr_change": "true",
            },
        )
        try:
            asset = data[self._asset_id]
            price = float(asset[self._currency])
            local = asset.get(self._local_currency)
            change = asset.get(f"{self._currency}_24h_change") or 0.0
            return SpotQuote(
                price=price,
                local_price=float(local) if local is not None else None,
                change_24h=float(change),
                currency=self._currency,
                local_currency=self._local_currency,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PriceFeedError(f"Malformed spot payload: {data}") from exc

    async def fetch_history(self, days: int) -> list[tuple[datetime, float]]:
        data = await self._get_json(
            f"/coins/{self._asset_id}/market_chart",
            {"vs_currency": self._currency, "days": str(days)},
        )
        try:
            return [
                (datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc), float(price))
                for ts_ms, price in data["prices"]
            ]
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise PriceFeedError("Malformed market_chart payload") from exc


# Module-level provider override (for tests)
_provider: PriceProvider | None = None


def get_price_provider() -> PriceProvider:
    """Return the configured price provider."""
    if _provider is not None:
        return _provider
    if settings.PRICE_FEED_MOCK:
        return MockPriceProvider()
    return CoinGeckoPriceProvider()


def set_price_provider(provider: PriceProvider | None) -> None:
    """Override the price provider (for testing)."""
    global _provider
    _provider = provider


# ---------------------------------------------------------------------------
# Series helpers
# ---------------------------------------------------------------------------


def change_percent(series: list[PricePoint]) -> float:
    """Percent change from first to last point; 0 for empty or zero-start series."""
    if not series or series[0].price == 0:
        return 0.0
    first, last = series[0].price, series[-1].price
    return (last - first) / first * 100


def build_series(
    raw: list[tuple[datetime, float]], time_range: TimeRange,
) -> list[PricePoint]:
    """Trim (1H only) and label raw provider history."""
    if time_range == TimeRange.ONE_HOUR and raw:
        cutoff = raw[-1][0] - ONE_HOUR_WINDOW
        raw = [(ts, price) for ts, price in raw if ts >= cutoff]
    return [
        PricePoint(label=format_label(ts, time_range), price=price)
        for ts, price in raw
    ]


# ---------------------------------------------------------------------------
# MarketDataFeed
# ---------------------------------------------------------------------------


class MarketDataFeed:
    """Spot + history fetcher with degraded-mode fallback."""

    def __init__(
        self,
        provider: PriceProvider | None = None,
        rng: random.Random | None = None,
        fallback_points: int | None = None,
    ):
        self._provider = provider
        self._rng = rng
        self._fallback_points = fallback_points or settings.FALLBACK_POINT_COUNT

    @property
    def provider(self) -> PriceProvider:
        if self._provider is not None:
            return self._provider
        return get_price_provider()

    async def fetch(
        self,
        time_range: TimeRange,
        on_spot: Callable[[SpotQuote], None] | None = None,
    ) -> MarketSnapshot:
        """
        Fetch a snapshot for *time_range*.

        ``on_spot`` receives the spot quote (with the provider's own 24h
        change) as soon as it arrives, before the history call.
        """
        provider = self.provider
        try:
            spot = await provider.fetch_spot()
            if on_spot is not None:
                on_spot(spot)
            raw = await provider.fetch_history(RANGE_DAYS[time_range])
        except (httpx.HTTPError, PriceFeedError, ValueError) as exc:
            logger.warning(
                "Price feed unavailable for %s, using fallback series: %s",
                time_range.value, exc,
            )
            return self._degraded(time_range)

        series = build_series(raw, time_range)
        return MarketSnapshot(
            series=series,
            reference_price=spot.price,
            local_reference_price=spot.local_price,
            change_percent=change_percent(series),
            range=time_range,
            degraded=False,
            fetched_at=datetime.now(timezone.utc),
        )

    def _degraded(self, time_range: TimeRange) -> MarketSnapshot:
        series = generate_fallback_series(
            time_range, point_count=self._fallback_points, rng=self._rng,
        )
        return MarketSnapshot(
            series=series,
            reference_price=series[-1].price if series else 0.0,
            local_reference_price=None,
            change_percent=change_percent(series),
            range=time_range,
            degraded=True,
            fetched_at=datetime.now(timezone.utc),
        )
