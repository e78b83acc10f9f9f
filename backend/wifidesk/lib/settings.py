"""
Application settings loaded from environment variables.
Uses pydantic-settings for validation and .env file support.
"""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database (required - the app refuses to start without it)
    database_url: str = Field(
        ...,
        min_length=1,
        description="SQLAlchemy connection string for the customer store"
    )

    # Application
    app_name: str = Field(default="WifiDesk Backend", description="Application name")
    debug: bool = Field(default=False, description="Debug mode (SQL echo, DEBUG logs)")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    # CORS
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",  # Next.js / React dev server
            "http://localhost:5173",  # Vite dev server
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="Origins allowed to call the API from a browser"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Load settings from the environment once per process.

    Raises:
        pydantic.ValidationError: if DATABASE_URL is missing
    """
    return Settings()
