# backend/shopledger/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Create tables on startup when no migration has been run yet
    AUTO_CREATE_SCHEMA = _env_bool("AUTO_CREATE_SCHEMA", True)

    # Calendar-day boundaries for "today" and daily reports
    SHOP_TIMEZONE = os.environ.get("SHOP_TIMEZONE", "UTC")

    # PIN used until a shop profile has been saved
    SHOP_DEFAULT_PIN = os.environ.get("SHOP_DEFAULT_PIN", "1234")

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

    # Reload every collection before each request so writes from other
    # workers and CLI commands are seen before anything is validated
    REFRESH_ON_REQUEST = _env_bool("REFRESH_ON_REQUEST", True)

    # Business insights assistant (Gemini generateContent REST API)
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-pro")
    GEMINI_BASE_URL = os.environ.get("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
    GEMINI_TIMEOUT_SECONDS = float(os.environ.get("GEMINI_TIMEOUT_SECONDS", "60"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
