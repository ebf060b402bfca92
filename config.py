"""Configuration management."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Application configuration."""

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "3000"))
    STATIC_DIR = Path(os.getenv("STATIC_DIR", str(BASE_DIR / "dist")))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    # Comma-separated; empty means same-origin only
    CORS_ORIGINS = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()
    ]

    # Open Library search
    OPENLIBRARY_SEARCH_URL = os.getenv(
        "OPENLIBRARY_SEARCH_URL", "https://openlibrary.org/search.json"
    )
    SEARCH_LIMIT = int(os.getenv("SEARCH_LIMIT", "20"))
    SEARCH_TIMEOUT = float(os.getenv("SEARCH_TIMEOUT", "15"))
    SEARCH_DEBOUNCE = float(os.getenv("SEARCH_DEBOUNCE", "0.5"))


config = Config()
