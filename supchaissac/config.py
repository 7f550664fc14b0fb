from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _normalise_prefix(raw_prefix: str) -> str:
    raw_prefix = raw_prefix.strip()
    if not raw_prefix or raw_prefix == "/":
        return ""
    if not raw_prefix.startswith("/"):
        raw_prefix = f"/{raw_prefix}"
    return raw_prefix.rstrip("/")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    URL_PREFIX = _normalise_prefix(os.getenv("FLASK_URL_PREFIX", ""))

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///supchaissac.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = _env_flag("DB_ECHO", "false")

    API_TITLE = os.getenv("API_TITLE", "SupChaissac API")
    API_VERSION = os.getenv("API_VERSION", "0.1.0")

    # Délais d'alerte du secrétariat, en jours
    SLA_PENDING_DAYS = int(os.getenv("SLA_PENDING_DAYS", "7"))
    SLA_UNPAID_DAYS = int(os.getenv("SLA_UNPAID_DAYS", "14"))

    EDIT_WINDOW_MINUTES = int(os.getenv("EDIT_WINDOW_MINUTES", "60"))
    PACTE_DEFAULT_HOURS = int(os.getenv("PACTE_DEFAULT_HOURS", "18"))
    BLOCK_HOLIDAYS = _env_flag("BLOCK_HOLIDAYS", "true")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BLOCK_HOLIDAYS = False
