# catalog_sync/core/config.py

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from pydantic import ConfigDict, ValidationError, field_validator
from pydantic_settings import BaseSettings

from catalog_sync.core.enums import DelistedPolicy
from catalog_sync.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Shopify API
    SHOPIFY_SHOP_URL: Optional[str] = None
    SHOPIFY_ADMIN_API_ACCESS_TOKEN: Optional[str] = None
    SHOPIFY_API_VERSION: str = "2024-04"
    SHOPIFY_LOCATION_GID: Optional[str] = None

    # Retry behaviour on throttling
    SHOPIFY_MAX_RETRIES: int = 3
    SHOPIFY_RETRY_BASE_DELAY: float = 0.5   # seconds, multiplied by attempt number
    SHOPIFY_REQUEST_TIMEOUT: float = 30.0

    # Sync behaviour
    DELISTED_POLICY: DelistedPolicy = DelistedPolicy.ZERO_STOCK
    SYNC_BATCH_SIZE: int = 50
    CATALOG_INDEX_BATCH_SIZE: int = 250
    INVENTORY_BATCH_SIZE: int = 250

    # Feed files
    FEED_DIRECTORY: str = "temp"
    INCOMING_FEED_PREFIX: str = "StockNouveautesCgn"
    DELISTED_FEED_PREFIX: str = "StockEpuisesCgn"
    FEED_SUFFIX: str = ".csv"
    FEED_ENCODING: str = "cp1252"

    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists(os.environ.get('ENV_FILE', '.env')) else None,
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DELISTED_POLICY", mode="before")
    @classmethod
    def _parse_policy(cls, value):
        return DelistedPolicy.from_value(value)


@lru_cache()
def get_settings():
    """
    Cached settings to avoid re-reading the .env file

    Raises:
        ConfigurationError: If a variable is set to an invalid value
    """
    try:
        return Settings()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()


@dataclass(frozen=True)
class SyncConfig:
    """
    Everything a sync run needs, resolved once at run start.

    Built from Settings by the caller so the engine never reads the
    environment itself.
    """
    shop_url: str
    access_token: str
    location_id: str
    api_version: str = "2024-04"
    policy: DelistedPolicy = DelistedPolicy.ZERO_STOCK
    batch_size: int = 50
    index_batch_size: int = 250
    inventory_batch_size: int = 250
    max_retries: int = 3
    retry_base_delay: float = 0.5
    request_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings, policy: Optional[DelistedPolicy] = None) -> "SyncConfig":
        missing = [
            name for name in ("SHOPIFY_SHOP_URL", "SHOPIFY_ADMIN_API_ACCESS_TOKEN", "SHOPIFY_LOCATION_GID")
            if not (getattr(settings, name) or "").strip()
        ]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        for name in ("SYNC_BATCH_SIZE", "CATALOG_INDEX_BATCH_SIZE", "INVENTORY_BATCH_SIZE"):
            if getattr(settings, name) <= 0:
                raise ConfigurationError(f"{name} must be a positive integer")
        if settings.SHOPIFY_MAX_RETRIES < 0:
            raise ConfigurationError("SHOPIFY_MAX_RETRIES cannot be negative")

        return cls(
            shop_url=settings.SHOPIFY_SHOP_URL.strip(),
            access_token=settings.SHOPIFY_ADMIN_API_ACCESS_TOKEN.strip(),
            location_id=settings.SHOPIFY_LOCATION_GID.strip(),
            api_version=settings.SHOPIFY_API_VERSION,
            policy=DelistedPolicy.from_value(policy or settings.DELISTED_POLICY),
            batch_size=settings.SYNC_BATCH_SIZE,
            index_batch_size=settings.CATALOG_INDEX_BATCH_SIZE,
            inventory_batch_size=settings.INVENTORY_BATCH_SIZE,
            max_retries=settings.SHOPIFY_MAX_RETRIES,
            retry_base_delay=settings.SHOPIFY_RETRY_BASE_DELAY,
            request_timeout=settings.SHOPIFY_REQUEST_TIMEOUT,
        )
