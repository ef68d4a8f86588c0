# backend/backoffice/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance by default; PostgreSQL in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///backoffice.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # List endpoints: page/limit defaults and the hard ceiling on limit
    DEFAULT_PAGE_LIMIT = int(os.environ.get("DEFAULT_PAGE_LIMIT", "10"))
    MAX_PAGE_LIMIT = int(os.environ.get("MAX_PAGE_LIMIT", "100"))

    # Retry policy for lock/deadlock failures inside atomic operations
    ATOMIC_RETRY_ATTEMPTS = int(os.environ.get("ATOMIC_RETRY_ATTEMPTS", "3"))
    ATOMIC_RETRY_BACKOFF = float(os.environ.get("ATOMIC_RETRY_BACKOFF", "0.1"))
