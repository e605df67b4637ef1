"""Records service configuration, read from the environment and ``.env``."""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")


def _flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # ------------------- FLASK -------------------
    SECRET_KEY = os.environ.get("SECRET_KEY", "securekey")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # photo uploads

    # ------------------- DATABASE -------------------
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'criminal_records.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" or "memory"
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql")
    SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", True)

    # ------------------- PREDICTION -------------------
    CRIME_DATA_PATH = os.environ.get(
        "CRIME_DATA_PATH", str(BASE_DIR / "prediction" / "crime_data.csv")
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORAGE_BACKEND = "memory"
    SEED_DEMO_DATA = False
