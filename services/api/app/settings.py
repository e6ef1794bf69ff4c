from datetime import date
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./data/kitchen.db"
    seed_on_startup: bool = True

    # Read-through cache
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    cache_prefix: str = "kitchen:cache:"
    cache_ttl_orders: int = 30  # seconds, high-churn listings
    cache_ttl_reviews: int = 60
    cache_ttl_stats: int = 120

    # Lets a named role re-bind to a new device (local development only)
    dev_mode: bool = False

    # Anniversary used by the "days together" statistic
    household_since: Optional[date] = None

    # SMS (Twilio)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None
    fulfiller_phone_number: Optional[str] = None

    # HTTP
    rate_limit: str = "100/minute"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost",
        "http://127.0.0.1",
    ]


settings = Settings()
