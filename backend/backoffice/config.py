# backend/backoffice/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///backoffice.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Orders with at least this many units may waive the delivery charge
    FREE_DELIVERY_MIN_QTY = int(os.environ.get("FREE_DELIVERY_MIN_QTY", "3"))

    RECENT_ORDERS_LIMIT = int(os.environ.get("RECENT_ORDERS_LIMIT", "20"))
