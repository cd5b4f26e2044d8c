# backend/bakerypos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bakerypos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bakerypos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Business clock: stock dates, document dates and the special-price hour
    # are all evaluated on the shop's local time.
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "Asia/Colombo")
    SPECIAL_PRICE_START_HOUR = _env_int("SPECIAL_PRICE_START_HOUR", 19)

    BILL_NUMBER_PREFIX = "INV"
    ORDER_NUMBER_PREFIX = "ORD"
    DOCUMENT_NUMBER_PAD = 4

    DB_RETRY_ATTEMPTS = _env_int("DB_RETRY_ATTEMPTS", 3)

    LOW_STOCK_THRESHOLD = _env_int("LOW_STOCK_THRESHOLD", 10)

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    # Receipt header defaults used until the shop profile is edited
    COMPANY_DEFAULT_NAME = os.environ.get("COMPANY_NAME", "Bakery POS")
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "Rs.")

    CORS_ALLOWED_ORIGINS = {
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    }
