# backend/polimarket/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/polimarket.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///polimarket.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales tax in basis points (1900 = 19%). Applied to every sale total.
    SALES_TAX_RATE_BPS = int(os.environ.get("SALES_TAX_RATE_BPS", "1900"))

    # Optimistic stock updates retry this many times on version conflicts
    STOCK_UPDATE_ATTEMPTS = int(os.environ.get("STOCK_UPDATE_ATTEMPTS", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
