"""
Application settings loaded from environment variables.

Uses pydantic-settings for type-safe configuration with .env file support.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global application settings."""

    # App
    APP_NAME: str = "Wekewa Exchange"
    APP_ENV: str = "development"
    DEBUG: bool = True

    # Redis (session-scoped storage)
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_SSL: bool = False
    SESSION_TTL_SECONDS: int = 86400

    # Price feed
    PRICE_API_URL: str = "https://api.coingecko.com/api/v3"
    PRICE_ASSET_ID: str = "worldcoin-wld"
    PRICE_QUOTE_CURRENCY: str = "usd"
    LOCAL_CURRENCY: str = "kes"
    PRICE_FEED_MOCK: bool = True  # set False in production to call the real API
    PRICE_FEED_TIMEOUT_SECONDS: float = 10.0
    PRICE_REFRESH_INTERVAL_SECONDS: int = 60

    # Fallback series (degraded mode)
    FALLBACK_START_PRICE: float = 4.65
    FALLBACK_POINT_COUNT: int = 50

    # Pricing
    PLATFORM_MARGIN: float = 0.03
    PRICE_LOCK_MINUTES: int = 15

    # Messaging / sharing
    WHATSAPP_CHAT_URL: str = "https://wa.me"
    MERCHANT_WHATSAPP_NUMBER: str = "254700000000"
    SHARE_BASE_URL: str = "https://wekewa.com"
    SHARE_HASHTAGS: str = "#Worldcoin #WLD #Wekewa"
    REFERRAL_QUERY_PARAM: str = "ref"
    LOCAL_UTC_OFFSET_HOURS: int = 3  # Africa/Nairobi

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
