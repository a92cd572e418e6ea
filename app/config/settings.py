import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _split_csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


class Settings(BaseModel):
    FMP_API_KEY: str | None = None
    TWELVE_DATA_API_KEY: str | None = None
    ALPHA_VANTAGE_API_KEY: str | None = None
    YAHOO_FINANCE_ENABLED: bool = False
    YAHOO_PROXY_URLS: list[str] = Field(default_factory=list)

    PROVIDER_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    PROVIDER_RETRY_ATTEMPTS: int = Field(default=2, ge=1)

    QUOTE_CACHE_TTL_SEC: int = Field(default=60, ge=1)
    SEARCH_CACHE_TTL_SEC: int = Field(default=300, ge=1)
    QUOTE_CACHE_MAX_ENTRIES: int = Field(default=1000, ge=1)

    INDIAN_SHARE_RATIO: float = Field(default=0.6, ge=0, le=1)

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            "FMP_API_KEY": os.getenv("FMP_API_KEY"),
            "TWELVE_DATA_API_KEY": os.getenv("TWELVE_DATA_API_KEY"),
            "ALPHA_VANTAGE_API_KEY": os.getenv("ALPHA_VANTAGE_API_KEY"),
            "YAHOO_FINANCE_ENABLED": os.getenv("YAHOO_FINANCE_ENABLED"),
            "YAHOO_PROXY_URLS": _split_csv(os.getenv("YAHOO_PROXY_URLS")),
            "PROVIDER_TIMEOUT_SEC": os.getenv("PROVIDER_TIMEOUT_SEC"),
            "PROVIDER_RETRY_ATTEMPTS": os.getenv("PROVIDER_RETRY_ATTEMPTS"),
            "QUOTE_CACHE_TTL_SEC": os.getenv("QUOTE_CACHE_TTL_SEC"),
            "SEARCH_CACHE_TTL_SEC": os.getenv("SEARCH_CACHE_TTL_SEC"),
            "QUOTE_CACHE_MAX_ENTRIES": os.getenv("QUOTE_CACHE_MAX_ENTRIES"),
            "INDIAN_SHARE_RATIO": os.getenv("INDIAN_SHARE_RATIO"),
        }
        # unset env vars fall back to field defaults
        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
