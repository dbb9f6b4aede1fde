"""
Configuration management for the picture frame backend.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Picture Frame API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Backend API for an unattended picture frame display"

    # CORS Configuration
    # The frame frontend is usually served from the same origin,
    # the local ports cover the development server of the web app
    CORS_ORIGINS: List[str] = [
        "http://localhost:4200",
        "http://localhost:8080",
        "http://127.0.0.1:4200",
        "http://127.0.0.1:8080",
    ]

    # Key-value store (single SQLite file)
    DATABASE_URL: str = "sqlite+aiosqlite:///frame.db"
    DATABASE_TIMEOUT_SECONDS: float = 15.0

    # Image storage
    IMAGE_DIR: str = "images"
    PREPOPULATE_SUFFIX: str = ".jpg"
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024

    # Defaults written on first initialization of the configuration bucket
    DEFAULT_IMAGE_DURATION: int = 60
    DEFAULT_RANDOM_ORDER: bool = False

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


# Global settings instance
settings = Settings()
