"""
Integration test fixtures — real Redis.

Requires a Redis server, e.g.:
  docker run --rm -p 6380:6379 redis:7

Environment variables (set by the test runner or .env.test):
  REDIS_HOST=localhost
  REDIS_PORT=6380
"""

import os
import socket

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ── Service availability check ─────────────────────────────────────────────

def _port_open(host: str, port: int, timeout: float = 1.0) -> bool:
    """Return True if a TCP connection to host:port succeeds."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


_REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
_REDIS_PORT = int(os.environ.get("REDIS_PORT", "6380"))

REDIS_UP = _port_open(_REDIS_HOST, _REDIS_PORT)
REDIS_URL = f"redis://{_REDIS_HOST}:{_REDIS_PORT}"


# ── Real Redis client ──────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def real_redis():
    """Provide a real Redis client and flush the test DB after each test."""
    if not REDIS_UP:
        pytest.skip(
            f"Redis not available at {_REDIS_HOST}:{_REDIS_PORT}"
        )
    import redis.asyncio as aioredis

    r = aioredis.from_url(REDIS_URL, decode_responses=True)
    yield r
    await r.flushdb()
    await r.aclose()


# ── ASGI test client wired to real Redis ───────────────────────────────────

@pytest_asyncio.fixture
async def integration_client(real_redis, scheduler):
    """
    httpx AsyncClient pointing at the real FastAPI app with get_redis
    backed by the test Redis and the scheduler stubbed.
    """
    from app.api.deps import get_scheduler
    from app.redis_client import get_redis
    from app.main import app

    async def _override_redis():
        return real_redis

    async def _override_scheduler():
        return scheduler

    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_scheduler] = _override_scheduler

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
