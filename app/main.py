"""
Wekewa Exchange — FastAPI application entry point.

Configures the app, middleware, and registers all API routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api import market, trades, referrals


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    from app.redis_client import redis
    from app.services.refresh_scheduler import refresh_scheduler

    # Startup: begin polling the price feed
    refresh_scheduler.start()

    yield

    # Shutdown: stop polling, close connections
    await refresh_scheduler.stop()
    await redis.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Worldcoin P2P storefront: live pricing, fee-adjusted offers and settlement requests.",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routers ---
app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])
app.include_router(trades.router, prefix="/api/v1/trades", tags=["Trades"])
app.include_router(referrals.router, prefix="/api/v1/referrals", tags=["Referrals"])


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "0.1.0",
    }
