"""
Fallback series generator — synthetic price history for degraded mode.

Used by the market data feed when the live provider is unreachable.
Timestamps are evenly spaced across the selected range and labelled
the same way as live data; prices follow a bounded random walk.
"""

import random
import time
from datetime import datetime, timedelta, timezone

from app.config import settings
from app.schemas.market import PricePoint, TimeRange

# Total span covered by each range
RANGE_SPANS = {
    TimeRange.ONE_HOUR: timedelta(hours=1),
    TimeRange.ONE_DAY: timedelta(days=1),
    TimeRange.ONE_WEEK: timedelta(days=7),
    TimeRange.ONE_MONTH: timedelta(days=30),
    TimeRange.ONE_YEAR: timedelta(days=365),
}

# strftime pattern for point labels per range
LABEL_FORMATS = {
    TimeRange.ONE_HOUR: "%H:%M",
    TimeRange.ONE_DAY: "%H:%M",
    TimeRange.ONE_WEEK: "%m/%d",
    TimeRange.ONE_MONTH: "%m/%d",
    TimeRange.ONE_YEAR: "%m/%Y",
}

STEP_LIMIT = 0.075
PRICE_FLOOR = 0.1


def format_label(ts: datetime, time_range: TimeRange) -> str:
    """Format a timestamp bucket label for *time_range*."""
    return ts.strftime(LABEL_FORMATS[time_range])


def generate_fallback_series(
    time_range: TimeRange,
    point_count: int = 50,
    rng: random.Random | None = None,
    start_price: float | None = None,
    now: datetime | None = None,
) -> list[PricePoint]:
    """
    Generate *point_count* synthetic points ending at *now*.

    Each price is the previous one plus a uniform step in
    [-0.075, +0.075], floored at 0.1. Pass a seeded *rng* for
    reproducible output.
    """
    if point_count <= 0:
        return []

    if rng is None:
        rng = random.Random(time.time_ns())
    if start_price is None:
        start_price = settings.FALLBACK_START_PRICE
    if now is None:
        now = datetime.now(timezone.utc)

    span = RANGE_SPANS[time_range]
    step = span / point_count

    points: list[PricePoint] = []
    price = start_price
    for i in range(point_count):
        ts = now - step * (point_count - 1 - i)
        price = max(PRICE_FLOOR, price + rng.uniform(-STEP_LIMIT, STEP_LIMIT))
        points.append(PricePoint(label=format_label(ts, time_range), price=round(price, 4)))

    return points
