"""
Settlement request messages and WhatsApp deep links.

Builds the human-readable sell-order text a seller sends to the merchant
and wraps it in a ``wa.me`` deep link with a pre-filled, URL-encoded
message. Delivery is fire-and-forget: the link is opened by the client
and no response is awaited.

Templates support English (``en``) and Swahili (``sw``) via the
``lang`` parameter.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Protocol
from urllib.parse import quote

from app.config import settings
from app.merchants import get_merchant, resolve_network
from app.schemas.referral import ReferralState
from app.schemas.trade import PaymentRail, SettlementQuote, SettlementRequest, TradeOffer

logger = logging.getLogger(__name__)

PLACEHOLDER = "N/A"

ORDER_NUMBER_MIN = 100000
ORDER_NUMBER_MAX = 999999

RAIL_LABELS = {
    PaymentRail.LIGHTNING: "BTC Lightning",
    PaymentRail.MOBILE_MONEY: "M-Pesa",
    PaymentRail.BANK_TRANSFER: "Bank Transfer",
}

ACCOUNT_LABELS = {
    PaymentRail.LIGHTNING: "Lightning invoice",
    PaymentRail.MOBILE_MONEY: "M-Pesa number",
    PaymentRail.BANK_TRANSFER: "Account number",
}


# ── Message templates ────────────────────────────────────────────────────

_TEMPLATES = {
    ("sell_order", "en"): (
        "*New Sell Order #{order_number}*\n"
        "━━━━━━━━━━━━━━━━━━\n"
        "Amount: *{quantity} WLD*\n"
        "Network: {network}\n"
        "Deposit address: {deposit_address}\n"
        "Time: {timestamp}\n"
        "Payment method: {payment_method}\n"
        "You receive: *{net} {currency}*\n"
        "{account_label}: {account_ref}"
    ),
    ("sell_order", "sw"): (
        "*Agizo Jipya la Kuuza #{order_number}*\n"
        "━━━━━━━━━━━━━━━━━━\n"
        "Kiasi: *{quantity} WLD*\n"
        "Mtandao: {network}\n"
        "Anwani ya kuweka: {deposit_address}\n"
        "Muda: {timestamp}\n"
        "Njia ya malipo: {payment_method}\n"
        "Utapokea: *{net} {currency}*\n"
        "{account_label}: {account_ref}"
    ),
    ("bank_line", "en"): "\nBank: {bank_name}",
    ("bank_line", "sw"): "\nBenki: {bank_name}",
    ("referral_line", "en"): "\n━━━━━━━━━━━━━━━━━━\nReferred by: {referrer}",
    ("referral_line", "sw"): "\n━━━━━━━━━━━━━━━━━━\nAmeletwa na: {referrer}",
}


def get_template(name: str, lang: str = "en", **kwargs) -> str:
    """
    Render a named message template.

    Falls back to English if the requested language is not available.
    """
    template = _TEMPLATES.get((name, lang)) or _TEMPLATES.get((name, "en"), "")
    if kwargs:
        return template.format(**kwargs)
    return template


# ── Formatting helpers ───────────────────────────────────────────────────


def _text_or_placeholder(value: object) -> str:
    if value is None:
        return PLACEHOLDER
    text = str(value).strip()
    return text or PLACEHOLDER


def format_money(amount: Decimal) -> str:
    """Two decimal places, e.g. ``659892.00``."""
    return f"{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"


def format_quantity(quantity: Decimal) -> str:
    """Drop trailing zeros: ``1000`` not ``1000.000``."""
    return format(quantity.normalize(), "f")


def format_local_time(ts: datetime) -> str:
    """Render *ts* in the storefront's local time (dd/mm/yyyy, HH:MM:SS)."""
    local_tz = timezone(timedelta(hours=settings.LOCAL_UTC_OFFSET_HOURS))
    return ts.astimezone(local_tz).strftime("%d/%m/%Y, %H:%M:%S")


def generate_order_number(rng: random.Random | None = None) -> int:
    """Random 6-digit order number."""
    return (rng or random).randint(ORDER_NUMBER_MIN, ORDER_NUMBER_MAX)


# ── Builders ─────────────────────────────────────────────────────────────


def build_order_message(
    *,
    offer: TradeOffer,
    quote: SettlementQuote,
    network: str | None,
    deposit_address: str | None,
    account_ref: str | None,
    referral: ReferralState,
    order_number: int,
    bank_name: str | None = None,
    now: datetime | None = None,
    lang: str = "en",
) -> str:
    """Render the sell-order text for the merchant chat."""
    if now is None:
        now = datetime.now(timezone.utc)

    message = get_template(
        "sell_order", lang,
        order_number=order_number,
        quantity=format_quantity(quote.quantity),
        network=_text_or_placeholder(network),
        deposit_address=_text_or_placeholder(deposit_address),
        timestamp=format_local_time(now),
        payment_method=RAIL_LABELS[offer.payment_rail],
        net=format_money(quote.net),
        currency=offer.local_currency,
        account_label=ACCOUNT_LABELS[offer.payment_rail],
        account_ref=_text_or_placeholder(account_ref),
    )

    if offer.payment_rail == PaymentRail.BANK_TRANSFER:
        message += get_template(
            "bank_line", lang, bank_name=_text_or_placeholder(bank_name),
        )

    if referral.referrer_id:
        message += get_template("referral_line", lang, referrer=referral.referrer_id)

    return message


def build_chat_link(message: str, phone: str | None = None) -> str:
    """``wa.me`` deep link with the URL-encoded message pre-filled."""
    phone = (phone or settings.MERCHANT_WHATSAPP_NUMBER).lstrip("+")
    base = settings.WHATSAPP_CHAT_URL.rstrip("/")
    return f"{base}/{phone}?text={quote(message, safe='')}"


def build_settlement_request(
    *,
    offer: TradeOffer,
    quote: SettlementQuote,
    network: str,
    account_ref: str,
    referral: ReferralState,
    bank_name: str | None = None,
    order_number: int | None = None,
    now: datetime | None = None,
    lang: str = "en",
) -> SettlementRequest:
    """
    Snapshot offer, quote, deposit details and referral into a request.

    Raises UnknownMerchantError / UnknownNetworkError from the directory.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if order_number is None:
        order_number = generate_order_number()

    merchant = get_merchant(offer.merchant_id)
    selected = resolve_network(merchant, network)

    message = build_order_message(
        offer=offer,
        quote=quote,
        network=selected.name,
        deposit_address=merchant.deposit_address,
        account_ref=account_ref,
        referral=referral,
        order_number=order_number,
        bank_name=bank_name,
        now=now,
        lang=lang,
    )

    request = SettlementRequest(
        order_number=order_number,
        offer=offer,
        quote=quote,
        network=selected.name,
        deposit_address=merchant.deposit_address,
        account_ref=account_ref,
        bank_name=bank_name,
        referral=referral,
        created_at=now,
        message=message,
        deep_link=build_chat_link(message),
    )
    logger.info(
        "Settlement request #%d for offer %s: %s WLD -> %s %s",
        order_number, offer.offer_id, quote.quantity,
        format_money(quote.net), offer.local_currency,
    )
    return request


# ── Delivery (fire-and-forget) ───────────────────────────────────────────


class MessagingChannel(Protocol):
    def open(self, url: str) -> None: ...


def open_channel(channel: MessagingChannel, url: str) -> bool:
    """
    Hand *url* to *channel* without awaiting delivery.

    Failures are logged and ignored; returns whether the hand-off succeeded.
    """
    try:
        channel.open(url)
    except Exception as exc:
        logger.warning("Could not open messaging channel for %s: %s", url[:80], exc)
        return False
    return True
