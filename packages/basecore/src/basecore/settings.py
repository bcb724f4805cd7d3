"""
Runtime settings for basecore consumers.

Values come from environment variables (or a local .env file).
Settings are read lazily through get_settings() so importing a module
never touches the environment.
"""

import functools
from decimal import Decimal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration."""

    DATABASE_URL: str = "sqlite:///./autodiscount.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json

    # Fernet key used to decrypt stored shop access tokens (optional in dev)
    CREDENTIAL_ENCRYPTION_KEY: str | None = None

    # Price oscillation
    AUTODISCOUNT_ELEVATION_OFFSET: Decimal = Decimal("2.00")
    AUTODISCOUNT_BASE_OFFSET: Decimal = Decimal("0.00")
    AUTODISCOUNT_ITEM_TIMEOUT_SECONDS: float = 30.0
    AUTODISCOUNT_MAX_CONCURRENT_SHOPS: int = 4

    # Per-shop serialization. The worker, the admin API and the CLI are
    # separate processes, so only redis serializes them against each other;
    # memory is for a single process (tests, local experiments).
    AUTODISCOUNT_LOCK_BACKEND: str = "redis"  # redis | memory
    AUTODISCOUNT_LOCK_TTL_SECONDS: int = 900

    # Timer
    AUTODISCOUNT_CRON: str = "0 0 * * *"
    AUTODISCOUNT_TIMEZONE: str = "UTC"

    # Catalog
    CATALOG_PROVIDER: str = "shopify"  # shopify | stub
    SHOPIFY_API_VERSION: str = "2024-10"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)

    @field_validator("AUTODISCOUNT_ELEVATION_OFFSET", "AUTODISCOUNT_BASE_OFFSET")
    @classmethod
    def validate_offset(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("price offsets must be zero or positive")
        return v

    @field_validator("AUTODISCOUNT_ITEM_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("item timeout must be positive")
        return v

    @field_validator("AUTODISCOUNT_MAX_CONCURRENT_SHOPS", "AUTODISCOUNT_LOCK_TTL_SECONDS")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator("AUTODISCOUNT_LOCK_BACKEND")
    @classmethod
    def validate_lock_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("AUTODISCOUNT_LOCK_BACKEND must be 'memory' or 'redis'")
        return v

    @field_validator("CATALOG_PROVIDER")
    @classmethod
    def validate_catalog_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in ("shopify", "stub"):
            raise ValueError("CATALOG_PROVIDER must be 'shopify' or 'stub'")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v

    @model_validator(mode="after")
    def validate_lock_ttl(self) -> "Settings":
        # The lease is renewed before each item, so it must outlast one item
        if self.AUTODISCOUNT_LOCK_TTL_SECONDS <= self.AUTODISCOUNT_ITEM_TIMEOUT_SECONDS:
            raise ValueError("AUTODISCOUNT_LOCK_TTL_SECONDS must exceed AUTODISCOUNT_ITEM_TIMEOUT_SECONDS")
        return self


@functools.lru_cache()
def get_settings() -> Settings:
    """Get settings (cached)."""
    return Settings()
