"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    food_search_base_url: str = "http://localhost:54321/functions/v1"
    food_search_api_key: str | None = None
    open_food_facts_base_url: str = "https://world.openfoodfacts.org"
    open_food_facts_user_agent: str = "FoodSearch/1.0 (food-search)"
    http_timeout_seconds: float = 10.0
    search_limit: int = Field(default=20, ge=1, le=50)
    search_cache_ttl_seconds: int = 300
    search_cache_max_entries: int = 50
    snapshot_ttl_seconds: int = 900
    product_cache_ttl_seconds: int = 86400
    debounce_ms: int = 800
    min_query_length: int = 2
    cap_per_group: int = 4
    initial_result_limit: int = 9
    load_more_page_size: int = 10
    low_relevance_threshold: float = 0.4
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 10.0
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
