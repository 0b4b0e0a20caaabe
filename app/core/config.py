"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here; no scattered magic strings.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

DEFAULT_TRACKED_TICKERS = [
    "SBER",
    "GAZP",
    "LKOH",
    "MGNT",
    "ROSN",
    "NVTK",
    "YNDX",
    "OZON",
]


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode (exposes /docs). Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for endpoints that call the provider.
        tinkoff_api_token: Bearer token for the Tinkoff Invest API.
            Also read from TINKOFF_TOKEN. Empty disables live data.
        tinkoff_base_url: Root of the Tinkoff Invest REST gateway.
        market_data_timeout_seconds: Per-request provider timeout.
        quote_cache_ttl_seconds: Lifetime of a cached provider response.
        quote_cache_max_entries: Capacity of the provider response cache.
        tracked_tickers: Ticker universe kept up to date by refresh.
        seed_demo_data: Load the demo portfolio into a fresh store.
        history_points: Number of points returned by the value history.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "MOEX Portfolio Dashboard"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"

    tinkoff_api_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TINKOFF_API_TOKEN", "TINKOFF_TOKEN"),
    )
    tinkoff_base_url: str = "https://invest-public-api.tinkoff.ru/rest"
    market_data_timeout_seconds: float = 10.0
    quote_cache_ttl_seconds: float = 60.0
    quote_cache_max_entries: int = 512
    tracked_tickers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRACKED_TICKERS)
    )

    seed_demo_data: bool = True
    history_points: int = Field(default=24, ge=1)


settings = Settings()
