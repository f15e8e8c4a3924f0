# backend/retail_ledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance by default; any SQLAlchemy URL works
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///retail_ledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Reject stock decrements that would drive current_stock below zero
    ENFORCE_STOCK_LEVELS = _env_flag("ENFORCE_STOCK_LEVELS", True)

    PAYMENT_METHODS = tuple(
        m.strip().upper()
        for m in os.environ.get("PAYMENT_METHODS", "CASH,CARD").split(",")
        if m.strip()
    )

    # SQLite ignores FOR UPDATE; BEGIN IMMEDIATE serializes writers instead
    SQLITE_IMMEDIATE_TRANSACTIONS = _env_flag("SQLITE_IMMEDIATE_TRANSACTIONS", True)

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
