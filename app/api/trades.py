"""
Trade endpoints — price-locked offers, settlement quotes, order requests.

Offers are stored in Redis under ``offer:{offer_id}`` with a TTL equal
to the price-lock window; an expired or unknown offer returns 410 so the
client re-acquires a fresh price.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_scheduler, get_session_id
from app.config import settings
from app.merchants import UnknownMerchantError, UnknownNetworkError, get_merchant, is_supported_bank
from app.redis_client import get_redis
from app.schemas.trade import (
    ConfirmOrderRequest,
    CreateOfferRequest,
    PaymentRail,
    QuoteRequest,
    SettlementQuote,
    SettlementRequest,
    TradeOffer,
)
from app.services.pricing_service import OFFER_KEY_PREFIX, PriceUnavailableError, create_offer
from app.services.referral_service import ReferralTracker
from app.services.refresh_scheduler import RefreshScheduler
from app.services.settlement_service import PriceLockExpiredError, quote
from app.whatsapp.messages import build_settlement_request

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_offer(redis, offer_id: str) -> TradeOffer:
    raw = await redis.get(f"{OFFER_KEY_PREFIX}{offer_id}")
    if raw is None:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="Offer expired or not found. Request a new offer.",
        )
    return TradeOffer.model_validate_json(raw)


def _quote_or_410(offer: TradeOffer, quantity) -> SettlementQuote:
    try:
        return quote(offer, quantity)
    except PriceLockExpiredError as exc:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=str(exc))


@router.post("/offers", response_model=TradeOffer, status_code=status.HTTP_201_CREATED)
async def create_trade_offer(
    payload: CreateOfferRequest,
    scheduler: RefreshScheduler = Depends(get_scheduler),
    redis=Depends(get_redis),
):
    """
    Lock the current offer price for the selected payment rail.

    The offer is valid for PRICE_LOCK_MINUTES. Returns 503 while no live
    local reference price is available.
    """
    try:
        get_merchant(payload.merchant_id)
    except UnknownMerchantError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    reference = scheduler.latest.local_reference_price if scheduler.latest else None
    try:
        offer = create_offer(reference, payload.payment_rail, payload.merchant_id)
    except PriceUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        )

    await redis.setex(
        f"{OFFER_KEY_PREFIX}{offer.offer_id}",
        settings.PRICE_LOCK_MINUTES * 60,
        offer.model_dump_json(),
    )
    return offer


@router.post("/offers/{offer_id}/quote", response_model=SettlementQuote)
async def quote_offer(
    offer_id: str,
    payload: QuoteRequest,
    redis=Depends(get_redis),
):
    """Gross / fee / net for the entered quantity (zeroed if invalid)."""
    offer = await _load_offer(redis, offer_id)
    return _quote_or_410(offer, payload.quantity)


@router.post("/offers/{offer_id}/request", response_model=SettlementRequest)
async def confirm_order(
    offer_id: str,
    payload: ConfirmOrderRequest,
    session_id: str = Depends(get_session_id),
    redis=Depends(get_redis),
):
    """
    Build the settlement request message and WhatsApp deep link.

    The session's referral attribution is attached when present.
    """
    offer = await _load_offer(redis, offer_id)
    settlement_quote = _quote_or_410(offer, payload.quantity)

    if settlement_quote.quantity <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Enter a valid WLD amount.",
        )

    if offer.payment_rail == PaymentRail.BANK_TRANSFER:
        if not payload.bank_name or not is_supported_bank(payload.bank_name):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Select a supported bank.",
            )

    referral = await ReferralTracker(redis).get(session_id)

    try:
        return build_settlement_request(
            offer=offer,
            quote=settlement_quote,
            network=payload.network,
            account_ref=payload.account_ref,
            referral=referral,
            bank_name=payload.bank_name,
        )
    except (UnknownMerchantError, UnknownNetworkError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
