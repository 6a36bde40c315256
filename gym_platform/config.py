"""Application configuration objects."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Type

from sqlalchemy.pool import NullPool


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class BaseConfig:
    """Shared defaults across all environments."""

    APP_NAME = "Gym Membership Platform"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite+pysqlite:///gym_dev.db",
    )
    # Identity provider tokens: HS256 with a shared secret, or RS256 with the
    # provider's public key.
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change_me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_PUBLIC_KEY = os.getenv("JWT_PUBLIC_KEY")
    JWT_DECODE_AUDIENCE = os.getenv("JWT_DECODE_AUDIENCE") or None
    JWT_TOKEN_LOCATION = ("headers",)
    IDENTITY_ROLE_CLAIM = os.getenv("IDENTITY_ROLE_CLAIM", "role")
    IDENTITY_WEBHOOK_SECRET = os.getenv("IDENTITY_WEBHOOK_SECRET", "")
    WEBHOOK_TOLERANCE_SECONDS = int(os.getenv("WEBHOOK_TOLERANCE_SECONDS", "300"))
    SIGNUPS_ENABLED = _env_flag("SIGNUPS_ENABLED", "true")
    ENDING_SOON_DAYS = int(os.getenv("ENDING_SOON_DAYS", "7"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    RATE_LIMIT_DEFAULTS = [limit.strip() for limit in os.getenv("RATE_LIMIT_DEFAULTS", "200 per minute;1000 per day").split(";") if limit.strip()]
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    JSON_SORT_KEYS = False
    SQLITE_TIMEOUT_SEC = int(os.getenv("SQLITE_TIMEOUT_SEC", "15"))
    SQLITE_BUSY_TIMEOUT_MS = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "15000"))
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "poolclass": NullPool,
            "connect_args": {"timeout": SQLITE_TIMEOUT_SEC, "check_same_thread": False},
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_pre_ping": True,
            "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
            "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        }


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
    }
    JWT_SECRET_KEY = "test-secret-key-with-enough-length"
    JWT_ALGORITHM = "HS256"
    JWT_PUBLIC_KEY = None
    IDENTITY_WEBHOOK_SECRET = "whsec_dGVzdC13ZWJob29rLXNlY3JldA=="
    RATELIMIT_ENABLED = False
    SIGNUPS_ENABLED = True


CONFIG_ALIASES: dict[str, Type[BaseConfig]] = {
    "dev": DevConfig,
    "development": DevConfig,
    "prod": ProdConfig,
    "production": ProdConfig,
    "test": TestConfig,
    "testing": TestConfig,
}


@lru_cache
def resolve_config(name_or_class: Any) -> Any:
    """Resolve config argument to the object expected by `app.config.from_object`."""

    if name_or_class is None:
        return DevConfig
    if isinstance(name_or_class, str):
        return CONFIG_ALIASES.get(name_or_class, name_or_class)
    return name_or_class
