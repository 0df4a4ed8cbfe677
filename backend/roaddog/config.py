# backend/roaddog/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Managed Postgres in production; local SQLite file otherwise
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///roaddog.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Title used when creating or searching for the user's spreadsheet
    SPREADSHEET_TITLE = os.environ.get("SPREADSHEET_TITLE", "Road Dog - Sales & Inventory")

    # Resend transactional email
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
    RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
    NOTIFICATION_FROM = os.environ.get("NOTIFICATION_FROM", "Road Dog <onboarding@resend.dev>")
    NOTIFICATION_RECIPIENT = os.environ.get("NOTIFICATION_RECIPIENT", "")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]
