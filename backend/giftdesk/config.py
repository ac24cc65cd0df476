# backend/giftdesk/config.py
from __future__ import annotations
import os


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Used by the "sql" store backend and by the local OTP provider
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///giftdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" (SQLAlchemy tables above) or "supabase" (hosted tables)
    STORE_BACKEND = os.environ.get("STORE_BACKEND", "sql").strip().lower()
    # "local" (codes issued by this service) or "supabase" (hosted email OTP)
    AUTH_BACKEND = os.environ.get("AUTH_BACKEND", "local").strip().lower()

    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_KEY = os.environ.get("SUPABASE_KEY", "")

    CORPORATE_EMAIL_DOMAIN = os.environ.get("CORPORATE_EMAIL_DOMAIN", "@gschargev.co.kr").strip().lower()
    SEED_ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "jhkang@gschargev.co.kr").strip().lower()
    SEED_ADMIN_NAME = os.environ.get("SEED_ADMIN_NAME", "관리자")

    BOOTSTRAP_TIMEOUT_SECONDS = _float_env("BOOTSTRAP_TIMEOUT_SECONDS", 7.0)
    CATALOG_INSERT_TIMEOUT_SECONDS = _float_env("CATALOG_INSERT_TIMEOUT_SECONDS", 8.0)

    # Generative text (Gemini through its OpenAI-compatible endpoint)
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", os.environ.get("API_KEY", ""))
    GEMINI_BASE_URL = os.environ.get(
        "GEMINI_BASE_URL",
        "https://generativelanguage.googleapis.com/v1beta/openai/",
    )
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-3-flash-preview")

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]
