"""
Application configuration.

Values are read from the environment; a local .env file is loaded first so
development credentials (TMDb token, secret key) never live in the repo.
Select a class by name through the ``config`` dict, e.g. create_app("testing").
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")

    # Relative SQLite paths resolve inside the instance folder
    SQLALCHEMY_DATABASE_URI        = os.environ.get("DATABASE_URL", "sqlite:///watchwise.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SESSION_COOKIE_HTTPONLY  = True
    SESSION_COOKIE_SAMESITE  = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True

    # Clients send the token from GET /api/auth/csrf as an X-CSRFToken header
    WTF_CSRF_TIME_LIMIT = None

    # CSV uploads
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # ── TMDb ─────────────────────────────────────────────────────────────────
    TMDB_READ_TOKEN = os.environ.get("TMDB_READ_TOKEN")   # v4 bearer token (preferred)
    TMDB_API_KEY    = os.environ.get("TMDB_API_KEY")      # v3 key fallback
    TMDB_REGION     = os.environ.get("TMDB_REGION", "US")
    TMDB_TIMEOUT    = float(os.environ.get("TMDB_TIMEOUT", "10"))

    # ── Rate limiting (Flask-Limiter) ────────────────────────────────────────
    RATELIMIT_ENABLED     = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT     = os.environ.get("RATELIMIT_DEFAULT", "300 per minute")

    # ── Feature tuning ───────────────────────────────────────────────────────
    FEED_DEFAULT_LIMIT        = 20
    FEED_MAX_LIMIT            = int(os.environ.get("FEED_MAX_LIMIT", "50"))
    RECOMMENDATION_MIN_RATING = int(os.environ.get("RECOMMENDATION_MIN_RATING", "4"))
    IMPORT_MAX_ROWS           = int(os.environ.get("IMPORT_MAX_ROWS", "2000"))

    TALISMAN_ENABLED = False
    TALISMAN_CONFIG  = {"force_https": True, "content_security_policy": None}


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING                 = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED        = False
    RATELIMIT_ENABLED       = False
    TMDB_READ_TOKEN         = "test-token"
    TMDB_API_KEY            = None
    LOG_LEVEL               = "WARNING"


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE  = True
    REMEMBER_COOKIE_SECURE = True
    TALISMAN_ENABLED       = _env_bool("TALISMAN_ENABLED", True)


config = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
    "default":     DevelopmentConfig,
}
