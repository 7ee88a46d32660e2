"""
Configuration management for the VR app store backend.
Handles environment variables and application settings.
"""
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Admin access (optional - write routes are open when unset)
    ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Fetch settings
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "10"))
    FETCH_MAX_RETRIES: int = int(os.getenv("FETCH_MAX_RETRIES", "2"))
    USER_AGENT: str = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    )

    # Batch scraping
    BATCH_CONCURRENCY: int = int(os.getenv("BATCH_CONCURRENCY", "4"))
    BATCH_REQUEST_DELAY: float = float(os.getenv("BATCH_REQUEST_DELAY", "0.5"))

    # Catalog storage
    CATALOG_BACKEND: str = os.getenv("CATALOG_BACKEND", "memory")  # memory, sqlite or json
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/vrstore.db")
    JSON_STORE_PATH: str = os.getenv("JSON_STORE_PATH", "data/apps.json")
    STORE_CONNECT_RETRIES: int = int(os.getenv("STORE_CONNECT_RETRIES", "3"))


config = Config()
