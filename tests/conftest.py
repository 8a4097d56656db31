"""
Shared test fixtures for Wekewa Exchange.

Provides Redis test doubles, offer factories, a refresh scheduler with
a stubbed feed, and an async test client wired to the FastAPI app.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_scheduler
from app.redis_client import get_redis
from app.schemas.market import MarketSnapshot, PricePoint, TimeRange
from app.schemas.trade import PaymentRail, TradeOffer
from app.services.refresh_scheduler import RefreshScheduler


# --- Redis doubles ---


@pytest.fixture
def mock_redis():
    """AsyncMock Redis client with common methods."""
    redis = AsyncMock()
    redis.setex = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.get = AsyncMock(return_value=None)
    redis.delete = AsyncMock()
    return redis


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the app uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis():
    return FakeRedis()


# --- Domain factories ---


def _make_offer(**overrides) -> TradeOffer:
    """Create a TradeOffer with test defaults (660 KES, fresh lock)."""
    now = datetime.now(timezone.utc)
    defaults = {
        "offer_id": "OF-TEST00000001",
        "unit_price": Decimal("660"),
        "payment_rail": PaymentRail.BANK_TRANSFER,
        "local_currency": "KES",
        "merchant_id": "m0",
        "created_at": now,
        "expires_at": now + timedelta(minutes=15),
    }
    defaults.update(overrides)
    return TradeOffer(**defaults)


@pytest.fixture
def make_offer():
    """Factory fixture for creating TradeOffer instances."""
    return _make_offer


def _make_snapshot(**overrides) -> MarketSnapshot:
    defaults = {
        "series": [
            PricePoint(label="10:00", price=4.60),
            PricePoint(label="11:00", price=4.83),
        ],
        "reference_price": 4.85,
        "local_reference_price": 680.0,
        "change_percent": 5.0,
        "range": TimeRange.ONE_DAY,
        "degraded": False,
        "fetched_at": datetime.now(timezone.utc),
    }
    defaults.update(overrides)
    return MarketSnapshot(**defaults)


@pytest.fixture
def make_snapshot():
    """Factory fixture for creating MarketSnapshot instances."""
    return _make_snapshot


class StubFeed:
    """Feed double returning queued snapshots (or a default) per call."""

    def __init__(self, snapshot: MarketSnapshot | None = None):
        self.snapshot = snapshot
        self.calls: list[TimeRange] = []

    async def fetch(self, time_range, on_spot=None):
        self.calls.append(time_range)
        snap = self.snapshot or _make_snapshot()
        return snap.model_copy(update={"range": time_range})


@pytest.fixture
def stub_feed():
    return StubFeed()


@pytest.fixture
def scheduler(stub_feed, make_snapshot):
    """RefreshScheduler with a stub feed and a pre-loaded live snapshot."""
    sched = RefreshScheduler(feed=stub_feed, interval=60)
    sched.latest = make_snapshot()
    return sched


# --- Dependency Override Helpers ---


@pytest_asyncio.fixture
async def client(fake_redis, scheduler):
    """
    Async HTTP test client with get_redis and get_scheduler overridden
    to use test doubles.
    """
    from app.main import app

    async def override_get_redis():
        return fake_redis

    async def override_get_scheduler():
        return scheduler

    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_scheduler] = override_get_scheduler

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


SESSION_HEADERS = {"X-Session-ID": "sess-0123456789"}


@pytest.fixture
def session_headers():
    return dict(SESSION_HEADERS)
