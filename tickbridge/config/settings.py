"""
TICKBRIDGE — Central Configuration
All settings are loaded from environment variables with sensible defaults.
Settings are read once at the application boundary and handed to the
market data service; nothing below the service reads the environment.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

# Literal value shipped in sample .env files; treated the same as an unset key.
PLACEHOLDER_API_KEY = "your_api_key"


class ProviderSettings(BaseSettings):
    """Quote provider (TwelveData) credentials, endpoints and pacing."""
    twelve_data_api_key: str = ""
    twelve_data_base_url: str = "https://api.twelvedata.com"
    user_agent: str = "AI-Trading-Platform/1.0"

    request_timeout_seconds: float = 10.0
    # Free tier allows 8 requests/minute; 1.2s between the four sub-fetches
    # keeps a single snapshot well under the burst limit.
    pacing_seconds: float = 1.2
    max_candles: int = 50
    default_candle_count: int = 50

    probe_symbol: str = "EUR/USD"
    probe_interval: str = "1h"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_configured(self) -> bool:
        key = self.twelve_data_api_key.strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


class AppSettings(BaseSettings):
    """Top-level application settings."""
    app_name: str = "TICKBRIDGE"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    provider: ProviderSettings = Field(default_factory=ProviderSettings)

    class Config:
        env_file = ".env"
        extra = "ignore"


# Singleton
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings
