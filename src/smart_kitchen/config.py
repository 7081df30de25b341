"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from smart_kitchen.domain.recipes import Category

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    recipes_table: str = "recipes"
    remote_timeout_seconds: float = 10.0
    max_cached_books: int = 1024
    default_category: Category = Category.DINNER
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
