from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env")

    database_url: str = "sqlite:///./maintenance.db"

    # Board fetch strategy
    filtered_fetch_limit: int = 200
    board_page_size: int = 10

    # Debounce delays (milliseconds)
    filter_debounce_ms: int = 500
    counts_refresh_debounce_ms: int = 1200
    realtime_refresh_debounce_ms: int = 450

    # Ignore realtime echoes of our own moves for this long
    realtime_echo_suppress_seconds: float = 3.0

    permission_cache_ttl_seconds: float = 300.0

    # Key namespace for persisted saved views
    saved_views_key_prefix: str = "filters:views:"


@lru_cache
def get_settings() -> Settings:
    return Settings()
