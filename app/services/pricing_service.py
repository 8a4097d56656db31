"""
Pricing engine — offer price, transfer fee schedule, and price-locked offers.

The offer price is the local-currency reference price less the platform
margin. Mobile money and bank transfer payouts carry a flat fee picked
from a bracket table; Lightning payouts are fee-free.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

from app.config import settings
from app.schemas.trade import FeeBracket, PaymentRail, TradeOffer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PLATFORM_MARGIN = Decimal(str(settings.PLATFORM_MARGIN))

# Flat fee per gross amount (local currency), half-open [min, max).
FEE_BRACKETS = [
    FeeBracket(min_inclusive=Decimal("0"), max_exclusive=Decimal("100"), fee=Decimal("0")),
    FeeBracket(min_inclusive=Decimal("100"), max_exclusive=Decimal("1000"), fee=Decimal("13")),
    FeeBracket(min_inclusive=Decimal("1000"), max_exclusive=Decimal("10000"), fee=Decimal("90")),
    FeeBracket(min_inclusive=Decimal("10000"), max_exclusive=Decimal("100000"), fee=Decimal("108")),
    FeeBracket(min_inclusive=Decimal("100000"), max_exclusive=None, fee=Decimal("108")),
]

FEE_RAILS = frozenset({PaymentRail.MOBILE_MONEY, PaymentRail.BANK_TRANSFER})

OFFER_KEY_PREFIX = "offer:"


class PriceUnavailableError(Exception):
    """Raised when an offer is requested before a reference price is known."""
    pass


# ---------------------------------------------------------------------------
# Offer price
# ---------------------------------------------------------------------------


def offer_price(reference_price: Decimal | float | None) -> Decimal:
    """
    Apply the platform margin to a local-currency reference price.

    Returns 0 when the reference price is unknown or not positive,
    which callers treat as "price unavailable".
    """
    if reference_price is None:
        return Decimal("0")
    ref = Decimal(str(reference_price))
    if not ref.is_finite() or ref <= 0:
        return Decimal("0")
    return ref * (Decimal("1") - PLATFORM_MARGIN)


# ---------------------------------------------------------------------------
# Fee schedule
# ---------------------------------------------------------------------------


def find_bracket(gross: Decimal) -> FeeBracket:
    """
    Return the single bracket containing *gross*.

    Fractional amounts between table edges (e.g. 99.5) fall into the
    lower bracket, whose upper bound is exclusive.
    """
    if gross < 0:
        raise ValueError(f"Gross amount must be non-negative, got {gross}")
    for bracket in FEE_BRACKETS:
        if bracket.max_exclusive is None or gross < bracket.max_exclusive:
            return bracket
    raise ValueError(f"No fee bracket covers {gross}")


def transfer_fee(gross: Decimal | float) -> Decimal:
    """Flat transfer fee for a gross local-currency amount."""
    return find_bracket(Decimal(str(gross))).fee


def fee_for_rail(gross: Decimal, rail: PaymentRail) -> Decimal:
    """Transfer fee gated by payment rail (Lightning is always free)."""
    if rail not in FEE_RAILS:
        return Decimal("0")
    return transfer_fee(gross)


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


def create_offer(
    reference_price: Decimal | float | None,
    payment_rail: PaymentRail,
    merchant_id: str,
    local_currency: str | None = None,
    now: datetime | None = None,
) -> TradeOffer:
    """
    Lock the current offer price for PRICE_LOCK_MINUTES.

    Raises PriceUnavailableError if no reference price has loaded yet.
    """
    unit_price = offer_price(reference_price).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    if unit_price <= 0:
        raise PriceUnavailableError(
            "Live price is not available yet. Try again shortly."
        )

    if now is None:
        now = datetime.now(timezone.utc)

    offer = TradeOffer(
        offer_id=f"OF-{uuid.uuid4().hex[:12].upper()}",
        unit_price=unit_price,
        payment_rail=payment_rail,
        local_currency=(local_currency or settings.LOCAL_CURRENCY).upper(),
        merchant_id=merchant_id,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.PRICE_LOCK_MINUTES),
    )
    logger.info(
        "Offer %s locked at %s %s via %s until %s",
        offer.offer_id, offer.unit_price, offer.local_currency,
        payment_rail.value, offer.expires_at.isoformat(),
    )
    return offer


def is_expired(offer: TradeOffer, now: datetime | None = None) -> bool:
    """True once the offer's price-lock window has elapsed."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now >= offer.expires_at
