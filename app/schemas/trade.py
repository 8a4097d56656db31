"""
Pydantic schemas for trade offers, settlement quotes and settlement requests.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.referral import ReferralState


class PaymentRail(str, Enum):
    """Settlement channel for the local-currency leg."""
    LIGHTNING = "lightning"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"


class FeeBracket(BaseModel):
    """Flat transfer fee for gross amounts in [min_inclusive, max_exclusive)."""
    model_config = ConfigDict(frozen=True)

    min_inclusive: Decimal
    max_exclusive: Decimal | None  # None means unbounded
    fee: Decimal


class TradeOffer(BaseModel):
    """Price-locked offer created when a payment rail is selected."""
    model_config = ConfigDict(frozen=True)

    offer_id: str
    unit_price: Decimal
    payment_rail: PaymentRail
    local_currency: str
    merchant_id: str
    created_at: datetime
    expires_at: datetime


class SettlementQuote(BaseModel):
    """Gross / fee / net breakdown for a quantity against an offer."""
    model_config = ConfigDict(frozen=True)

    quantity: Decimal
    gross: Decimal
    fee: Decimal
    net: Decimal


class SettlementRequest(BaseModel):
    """Immutable settlement request rendered at confirmation time."""
    model_config = ConfigDict(frozen=True)

    order_number: int
    offer: TradeOffer
    quote: SettlementQuote
    network: str
    deposit_address: str
    account_ref: str
    bank_name: str | None = None
    referral: ReferralState
    created_at: datetime
    message: str
    deep_link: str


# --- API request bodies ---


class CreateOfferRequest(BaseModel):
    payment_rail: PaymentRail
    merchant_id: str = "m0"


class QuoteRequest(BaseModel):
    # Raw user input; invalid values produce a zeroed quote.
    quantity: str | float | None = None


class ConfirmOrderRequest(BaseModel):
    quantity: str | float | None = None
    network: str = Field(..., min_length=1)
    account_ref: str = ""
    bank_name: str | None = None
