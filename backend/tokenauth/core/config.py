"""
Environment-driven settings.

``APP_ENV`` picks one of the classes below; each value can be overridden by
the environment variable of the same name (``.env`` is loaded on import).
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

ENV_VAR: Final[str] = "APP_ENV"

# Placeholders shipped for local development only
DEV_ACCESS_SECRET: Final[str] = "CHANGE_ME_ACCESS"
DEV_REFRESH_SECRET: Final[str] = "CHANGE_ME_REFRESH"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})

log = logging.getLogger(__name__)

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read ``name`` as a flag (``1/true/yes/y/on``, any case); ``default`` when unset."""
    raw = os.getenv(name)
    return default if raw is None else raw.strip().lower() in _TRUTHY


def parse_duration(value: str | int | timedelta) -> timedelta:
    """Parse a token lifetime such as ``"15m"``, ``"7d"`` or ``"900"``.

    :param value: Duration string ``<int><s|m|h|d>``, bare seconds, or a ``timedelta``.
    :returns: Parsed lifetime.
    :rtype: timedelta
    :raises ValueError: If the value is malformed or not strictly positive.
    """
    if isinstance(value, timedelta):
        delta = value
    elif isinstance(value, int):
        delta = timedelta(seconds=value)
    else:
        match = _DURATION_RE.match(str(value))
        if match is None:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        delta = timedelta(seconds=int(amount) * _DURATION_UNITS[unit.lower()])
    if delta <= timedelta(0):
        raise ValueError(f"Duration must be positive: {value!r}")
    return delta


class BaseConfig:
    """
    Settings common to every environment.

    Token secrets and lifetimes feed :class:`~tokenauth.services.auth.AuthTokenConfig`.
    ``LEDGER_BACKEND`` selects where refresh tokens are recorded (``sql``,
    ``redis`` or ``memory``); ``redis`` also needs ``REDIS_URL``.
    """

    API_BASE_PREFIX = os.getenv("API_BASE_PREFIX", "/api")

    # Tokens
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", DEV_ACCESS_SECRET)
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", DEV_REFRESH_SECRET)
    ACCESS_TOKEN_EXPIRY = os.getenv("ACCESS_TOKEN_EXPIRY", "15m")
    REFRESH_TOKEN_EXPIRY = os.getenv("REFRESH_TOKEN_EXPIRY", "7d")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ROTATE_REFRESH_ON_USE = env_bool("ROTATE_REFRESH_ON_USE", False)

    # Ledger
    LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "sql")
    REDIS_URL = os.getenv("REDIS_URL")

    # Werkzeug hash method for stored passwords
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./tokenauth.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Login throttling (Flask-Limiter)
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    APP_ENV = "development"
    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Fixed secrets, SQLite in memory, a fast password hash and no throttling."""

    APP_ENV = "testing"
    TESTING = True
    ACCESS_TOKEN_SECRET = "test-access-secret-0123456789abcdef"
    REFRESH_TOKEN_SECRET = "test-refresh-secret-0123456789abcdef"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite://")
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    """
    Production defaults.

    The secrets inherited from :class:`BaseConfig` are placeholders unless the
    environment sets them; :func:`validate_config` refuses to boot on those.
    """

    APP_ENV = "production"
    SQLALCHEMY_ECHO = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Settings class named by ``APP_ENV``; unknown or unset means development."""
    return CONFIG_MAP.get(os.getenv(ENV_VAR, "").strip().lower(), DevelopmentConfig)


def validate_config(config: Mapping[str, Any]) -> None:
    """Check token settings before the app starts serving.

    :param config: Loaded Flask config mapping.
    :raises RuntimeError: In production, when secrets are missing, left at the
        development placeholders, or shared between token kinds.
    :raises ValueError: When a lifetime string cannot be parsed.
    """
    parse_duration(config.get("ACCESS_TOKEN_EXPIRY", "15m"))
    parse_duration(config.get("REFRESH_TOKEN_EXPIRY", "7d"))

    access = config.get("ACCESS_TOKEN_SECRET")
    refresh = config.get("REFRESH_TOKEN_SECRET")
    same_secret = bool(access) and access == refresh

    if str(config.get("APP_ENV", "")).lower() == "production":
        if not access or not refresh:
            raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set.")
        if access == DEV_ACCESS_SECRET or refresh == DEV_REFRESH_SECRET:
            raise RuntimeError("Token secrets still use development placeholders.")
        if same_secret:
            raise RuntimeError("Access and refresh tokens must use different secrets.")
    elif same_secret:
        log.warning("config.same_token_secret")
