"""
Configuration classes, selected by name in ``create_app``:

    development  local SQLite file unless DATABASE_URL is set
    testing      in-memory SQLite (TEST_DATABASE_URL overrides), no rate limits
    production   DATABASE_URL and SECRET_KEY are mandatory
"""

import os
import secrets

_ROOT = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
_DEV_DB = "sqlite:///" + os.path.join(_ROOT, "instance", "immigration_dev.db")


def _database_url(var="DATABASE_URL"):
    """Read a DB URL; SQLAlchemy 2 only accepts the ``postgresql://`` scheme."""
    url = os.getenv(var, "").strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url or None


def _env_int(var, default):
    try:
        return int(os.getenv(var, default))
    except ValueError:
        return default


class Config:
    APP_NAME = "Immigration Case Manager"
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL")

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    MAX_CONTENT_LENGTH = 2 * 1024 * 1024
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Flask-Limiter reads RATELIMIT_* keys on init_app
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = True

    DEFAULT_TENANT_SLUG = os.getenv("DEFAULT_TENANT_SLUG", "default")
    UPCOMING_DEADLINE_DAYS = _env_int("UPCOMING_DEADLINE_DAYS", 30)


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _DEV_DB


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": _env_int("DB_POOL_SIZE", 5),
        "max_overflow": 10,
        "pool_recycle": 300,
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        missing = [name for name, value in (
            ("DATABASE_URL", self.SQLALCHEMY_DATABASE_URI),
            ("SECRET_KEY", os.getenv("SECRET_KEY")),
        ) if not value]
        if missing:
            raise RuntimeError(f"Production config requires: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
