"""
Application configuration using pydantic-settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "astra"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # API Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Postgres (asyncpg URL). Empty disables database features.
    database_url: str = ""

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # OpenAI (Content Oracle)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_timeout: float = 60.0

    # Chart Engine
    chart_engine_url: str = "http://localhost:8100"
    chart_engine_timeout: float = 20.0

    # Reference day: the daily forecast rolls over at 00:01 Moscow time
    reference_timezone: str = "Europe/Moscow"
    day_rollover_grace_minutes: int = 1

    # Shared daily forecast cache
    forecast_cache_backend: Literal["redis", "database"] = "redis"
    forecast_cache_ttl_hours: int = 48

    # Regeneration pricing (Telegram stars)
    regeneration_price_stars: int = 50
    regeneration_free_uses: int = 1
    regeneration_free_window_days: int = 1

    default_language: Literal["en", "ru"] = "en"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
