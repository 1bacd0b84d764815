# backend/halistock/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/halistock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///halistock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Products at or below this stock count are reported as low stock
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "2"))

    # Receipt header
    STORE_NAME = os.environ.get("STORE_NAME", "HaliStock Boutique")
    STORE_TAGLINE = os.environ.get("STORE_TAGLINE", "Vente et location de vêtements")
    STORE_ADDRESS = os.environ.get("STORE_ADDRESS", "1200 logts")
    STORE_PHONE = os.environ.get("STORE_PHONE", "+213668979699")
    CURRENCY = os.environ.get("CURRENCY", "DA")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
