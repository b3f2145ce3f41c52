# cryptoplace/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass


def parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


def parse_str(value: str | None, default: str) -> str:
    if value is None or value.strip() == "":
        return default
    return value.strip()


@dataclass(frozen=True)
class Settings:
    COINGECKO_BASE_URL: str
    COINGECKO_API_KEY: str
    COINGECKO_KEY_HEADER: str
    HTTP_TIMEOUT_SECONDS: float
    DEFAULT_CURRENCY: str
    FETCH_ON_STARTUP: bool
    LOG_LEVEL: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            COINGECKO_BASE_URL=parse_str(
                os.getenv("COINGECKO_BASE_URL"), "https://api.coingecko.com/api/v3"
            ).rstrip("/"),
            COINGECKO_API_KEY=os.getenv("COINGECKO_API_KEY", "").strip(),
            COINGECKO_KEY_HEADER=parse_str(os.getenv("COINGECKO_KEY_HEADER"), "x-cg-demo-api-key"),
            HTTP_TIMEOUT_SECONDS=parse_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 10.0),
            DEFAULT_CURRENCY=parse_str(os.getenv("DEFAULT_CURRENCY"), "usd").lower(),
            FETCH_ON_STARTUP=parse_bool(os.getenv("FETCH_ON_STARTUP"), True),
            LOG_LEVEL=parse_str(os.getenv("LOG_LEVEL"), "INFO").upper(),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the env."""
    global _settings
    _settings = None
