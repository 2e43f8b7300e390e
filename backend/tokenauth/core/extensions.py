"""Extension singletons plus the wiring of the auth core onto ``app.extensions``."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Constraint names stay stable across SQLite and PostgreSQL migrations
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

LEDGER_BACKENDS = ("sql", "redis", "memory")

db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
limiter = Limiter(key_func=get_remote_address)


def init_app(app: Flask) -> None:
    """
    Bind the extensions to ``app`` and build the auth core.

    A configured ``REDIS_URL`` must answer a ping, otherwise startup fails
    with :class:`RuntimeError`.
    """
    db.init_app(app)

    # Models must be imported before Alembic reads the metadata
    from tokenauth import models as _models  # noqa: F401

    migrate.init_app(app, db)
    limiter.init_app(app)

    redis_url = app.config.get("REDIS_URL")
    if redis_url:
        redis_client = redis.Redis.from_url(redis_url)
        try:
            redis_client.ping()
        except RedisError as exc:
            raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
        app.extensions["redis_client"] = redis_client
    else:
        app.extensions.pop("redis_client", None)

    init_auth(app)


def build_ledger(app: Flask):
    """Instantiate the refresh token ledger selected by ``LEDGER_BACKEND``.

    :raises RuntimeError: Unknown backend, or ``redis`` without ``REDIS_URL``.
    """
    backend = str(app.config.get("LEDGER_BACKEND", "sql")).strip().lower()
    if backend not in LEDGER_BACKENDS:
        raise RuntimeError(f"Unknown LEDGER_BACKEND {backend!r}; expected one of {LEDGER_BACKENDS}")

    if backend == "redis":
        from tokenauth.infra.redis.redis_refresh_token_ledger import RedisRefreshTokenLedger

        client = app.extensions.get("redis_client")
        if client is None:
            raise RuntimeError("LEDGER_BACKEND=redis requires REDIS_URL.")
        return RedisRefreshTokenLedger(client)

    if backend == "memory":
        from tokenauth.services._shared.ports import InMemoryRefreshTokenLedger

        return InMemoryRefreshTokenLedger()

    from tokenauth.infra.sql.sql_refresh_token_ledger import SQLRefreshTokenLedger

    return SQLRefreshTokenLedger()


def init_auth(app: Flask) -> None:
    """Wire codec, ledger, credential store, lifecycle service and gate.

    Results are stored on ``app.extensions`` under ``"refresh_token_ledger"``,
    ``"auth_service"`` and ``"verification_gate"``.
    """
    from tokenauth.core.config import parse_duration
    from tokenauth.core.security import PasswordHasher
    from tokenauth.infra.jwt.jwt_token_codec import PyJWTTokenCodec
    from tokenauth.infra.sql.sql_credential_store import SQLCredentialStore
    from tokenauth.services.auth import AuthService, AuthTokenConfig, VerificationGate

    cfg = AuthTokenConfig(
        access_secret=app.config["ACCESS_TOKEN_SECRET"],
        refresh_secret=app.config["REFRESH_TOKEN_SECRET"],
        access_expires=parse_duration(app.config.get("ACCESS_TOKEN_EXPIRY", "15m")),
        refresh_expires=parse_duration(app.config.get("REFRESH_TOKEN_EXPIRY", "7d")),
        rotate_refresh_on_use=bool(app.config.get("ROTATE_REFRESH_ON_USE", False)),
    )
    codec = PyJWTTokenCodec(algorithm=app.config.get("JWT_ALGORITHM", "HS256"))
    hasher = PasswordHasher(method=app.config.get("PASSWORD_HASH_METHOD", "scrypt"))
    ledger = build_ledger(app)

    app.extensions["refresh_token_ledger"] = ledger
    app.extensions["auth_service"] = AuthService(
        credentials=SQLCredentialStore(hasher),
        ledger=ledger,
        codec=codec,
        token_cfg=cfg,
        hasher=hasher,
    )
    app.extensions["verification_gate"] = VerificationGate(
        codec=codec, access_secret=cfg.access_secret
    )
