"""
Market data endpoints.

Serves the latest snapshot published by the refresh scheduler, the
provider's spot quote, and the derived offer price.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_scheduler
from app.config import settings
from app.schemas.market import MarketSnapshot, OfferPriceResponse, SpotQuote, TimeRange
from app.services.pricing_service import offer_price
from app.services.refresh_scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/snapshot", response_model=MarketSnapshot)
async def get_snapshot(
    time_range: TimeRange = Query(TimeRange.ONE_DAY, alias="range"),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """
    Latest market snapshot for the selected range.

    Selecting a different range restarts the periodic refresh for it and
    waits for the first fetch. Degraded snapshots are returned as-is.
    """
    latest = scheduler.latest
    if latest is not None and latest.range == time_range:
        return latest

    scheduler.set_range(time_range)
    return await scheduler.refresh(time_range)


@router.get("/spot", response_model=SpotQuote)
async def get_spot(scheduler: RefreshScheduler = Depends(get_scheduler)):
    """Most recent provider spot quote (with the provider's 24h change)."""
    if scheduler.latest_spot is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Spot price not available yet.",
        )
    return scheduler.latest_spot


@router.get("/offer-price", response_model=OfferPriceResponse)
async def get_offer_price(scheduler: RefreshScheduler = Depends(get_scheduler)):
    """
    Current offer price in local currency.

    ``offer_price`` is ``"0"`` and ``available`` false until a live
    local reference price has loaded (e.g. while in degraded mode).
    """
    reference = scheduler.latest.local_reference_price if scheduler.latest else None
    price = offer_price(reference)
    return OfferPriceResponse(
        reference_price=reference,
        offer_price=str(price),
        local_currency=settings.LOCAL_CURRENCY.upper(),
        available=price > 0,
    )
