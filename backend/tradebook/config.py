# backend/tradebook/config.py
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

    # SQLite DB stored in backend/instance/tradebook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///tradebook.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Orders may consume more than is on hand unless this is switched off.
    ALLOW_NEGATIVE_STOCK = _env_bool("ALLOW_NEGATIVE_STOCK", True)

    # Whole-operation retries applied by the API layer on version conflicts.
    CONFLICT_RETRY_ATTEMPTS = int(os.environ.get("CONFLICT_RETRY_ATTEMPTS", "3"))
    CONFLICT_RETRY_BACKOFF = float(os.environ.get("CONFLICT_RETRY_BACKOFF", "0.1"))

    DEFAULT_PAYMENT_MODE = os.environ.get("DEFAULT_PAYMENT_MODE", "Cash")
    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "20"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    ALLOW_NEGATIVE_STOCK = True
    CONFLICT_RETRY_ATTEMPTS = 1
    CONFLICT_RETRY_BACKOFF = 0.0
    LOG_LEVEL = "WARNING"
