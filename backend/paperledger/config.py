# backend/paperledger/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/paperledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///paperledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" persists ledger collections in the stored_collections table,
    # "memory" keeps them in a process-local dict (lost on restart)
    LEDGER_STORAGE = os.environ.get("LEDGER_STORAGE", "sql")

    # How many times to redraw a receipt number that clashes with an existing receipt
    RECEIPT_NUMBER_ATTEMPTS = int(os.environ.get("RECEIPT_NUMBER_ATTEMPTS", "5"))

    # Seed the default bank accounts the first time the bank list is read
    SEED_DEFAULT_BANKS = _env_bool("SEED_DEFAULT_BANKS", True)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LEDGER_STORAGE = "memory"
    LOG_LEVEL = "DEBUG"
