"""
Settlement calculator — gross / fee / net figures for a trade offer.

Recomputed on every quantity edit. Invalid quantities yield a zeroed
quote instead of an error; quoting against an offer whose price lock
has elapsed is rejected so the caller re-acquires a fresh price.
"""

from datetime import datetime
from decimal import Decimal

from app.schemas.trade import SettlementQuote, TradeOffer
from app.services.pricing_service import fee_for_rail, is_expired
from app.whatsapp.parser import parse_quantity

ZERO_QUOTE = SettlementQuote(
    quantity=Decimal("0"),
    gross=Decimal("0"),
    fee=Decimal("0"),
    net=Decimal("0"),
)


class PriceLockExpiredError(Exception):
    """Raised when quoting against an offer past its price-lock window."""
    pass


def quote(
    offer: TradeOffer,
    quantity: object,
    now: datetime | None = None,
) -> SettlementQuote:
    """
    Compute the settlement breakdown for *quantity* units of *offer*.

    gross = quantity * unit_price
    fee   = bracket fee for mobile money / bank transfer, else 0
    net   = max(0, gross - fee)
    """
    if is_expired(offer, now):
        raise PriceLockExpiredError(
            f"Price lock for offer {offer.offer_id} expired at "
            f"{offer.expires_at.isoformat()}. Request a new offer."
        )

    parsed = parse_quantity(quantity)
    if parsed is None:
        return ZERO_QUOTE

    gross = parsed * offer.unit_price
    fee = fee_for_rail(gross, offer.payment_rail)
    net = max(Decimal("0"), gross - fee)

    return SettlementQuote(quantity=parsed, gross=gross, fee=fee, net=net)
