"""
Pydantic schemas for market data: price points, spot quotes and snapshots.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class TimeRange(str, Enum):
    """Selectable chart lookback window."""
    ONE_HOUR = "1H"
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    ONE_YEAR = "1Y"


class PricePoint(BaseModel):
    """One observation in a price series."""
    model_config = ConfigDict(frozen=True)

    label: str
    price: float


class SpotQuote(BaseModel):
    """Provider spot price with its own 24h change (provisional change value)."""
    model_config = ConfigDict(frozen=True)

    price: float
    local_price: float | None = None
    change_24h: float = 0.0
    currency: str
    local_currency: str


class MarketSnapshot(BaseModel):
    """Result of one refresh cycle. Replaced wholesale, never mutated."""
    model_config = ConfigDict(frozen=True)

    series: list[PricePoint]
    reference_price: float
    local_reference_price: float | None = None
    change_percent: float
    range: TimeRange
    degraded: bool
    fetched_at: datetime


class OfferPriceResponse(BaseModel):
    """Offer price derived from the latest local reference price."""
    reference_price: float | None
    offer_price: str
    local_currency: str
    available: bool
