"""
Manual market fetch — runs a single feed fetch and prices a sample trade.

Usage:
    python scripts/fetch_market.py [RANGE] [QUANTITY]

Useful for checking the price provider (or the degraded fallback)
without starting the API server.
"""

import asyncio
import json
import sys

from app.schemas.market import TimeRange
from app.schemas.trade import PaymentRail
from app.services.market_feed import MarketDataFeed
from app.services.pricing_service import PriceUnavailableError, create_offer
from app.services.settlement_service import quote


async def main(time_range: TimeRange, quantity: str):
    """Fetch one snapshot and print quotes for every payment rail."""
    print(f"Fetching {time_range.value} market data...")
    snapshot = await MarketDataFeed().fetch(time_range)

    print("\n=== Market Snapshot ===")
    print(json.dumps(
        snapshot.model_dump(exclude={"series"}), indent=2, default=str,
    ))
    print(f"Points: {len(snapshot.series)}")

    print("\n=== Quotes ===")
    for rail in PaymentRail:
        try:
            offer = create_offer(snapshot.local_reference_price, rail, "m0")
        except PriceUnavailableError as exc:
            print(f"{rail.value}: {exc}")
            continue
        q = quote(offer, quantity)
        print(
            f"{rail.value}: {q.quantity} WLD @ {offer.unit_price} "
            f"= {q.gross} - {q.fee} fee -> {q.net} {offer.local_currency}"
        )


if __name__ == "__main__":
    selected = TimeRange(sys.argv[1]) if len(sys.argv) > 1 else TimeRange.ONE_DAY
    amount = sys.argv[2] if len(sys.argv) > 2 else "100"
    asyncio.run(main(selected, amount))
