# crypto_tracker/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

COINGECKO_MARKETS_URL = "https://api.coingecko.com/api/v3/coins/markets"


def parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_int(value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


def parse_float(value: str | None, default: Optional[float]) -> Optional[float]:
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    COINGECKO_URL: str
    COINGECKO_API_KEY: Optional[str]
    VS_CURRENCY: str
    PER_PAGE: int
    POLL_SECONDS: float
    POLL_ENABLED: bool
    HTTP_TIMEOUT_SECONDS: Optional[float]
    LOG_LEVEL: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            COINGECKO_URL=os.getenv("COINGECKO_URL", COINGECKO_MARKETS_URL),
            COINGECKO_API_KEY=os.getenv("COINGECKO_API_KEY") or None,
            VS_CURRENCY=os.getenv("TRACKER_VS_CURRENCY", "usd").strip().lower(),
            PER_PAGE=parse_int(os.getenv("TRACKER_PER_PAGE"), 50),
            POLL_SECONDS=parse_float(os.getenv("TRACKER_POLL_SECONDS"), 30.0),
            POLL_ENABLED=parse_bool(os.getenv("TRACKER_POLL_ENABLED"), True),
            HTTP_TIMEOUT_SECONDS=parse_float(os.getenv("TRACKER_HTTP_TIMEOUT_SECONDS"), None),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
