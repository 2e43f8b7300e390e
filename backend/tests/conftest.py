"""Pytest fixtures for the token lifecycle service.

Each test that needs a database gets a fresh Flask app bound to its own
in-memory SQLite database, so committed data never leaks between cases.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from flask import Flask

from tests.helpers.clock import FrozenClock
from tokenauth.core.config import TestingConfig
from tokenauth.core.extensions import db as _db
from tokenauth.core.security import PasswordHasher
from tokenauth.factory import create_app
from tokenauth.infra.jwt.jwt_token_codec import PyJWTTokenCodec
from tokenauth.services._shared.ports import InMemoryCredentialStore, InMemoryRefreshTokenLedger
from tokenauth.services.auth import AuthService, AuthTokenConfig

ACCESS_SECRET = TestingConfig.ACCESS_TOKEN_SECRET
REFRESH_SECRET = TestingConfig.REFRESH_TOKEN_SECRET


# ------------------------------ Flask app ---------------------------------- #


@pytest.fixture()
def app_factory() -> Iterator[Callable[..., Flask]]:
    """Build apps from :class:`TestingConfig` with per-test overrides.

    Tables are created inside a pushed app context and dropped on teardown.
    """
    contexts = []

    def _make(**overrides) -> Flask:
        config = type("OverrideConfig", (TestingConfig,), overrides)
        application = create_app(config, instance_relative_config=False)
        ctx = application.app_context()
        ctx.push()
        contexts.append(ctx)
        _db.create_all()
        return application

    yield _make

    for ctx in reversed(contexts):
        _db.session.remove()
        _db.drop_all()
        ctx.pop()


@pytest.fixture()
def app(app_factory) -> Flask:
    return app_factory()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def session(app):
    """The Flask-scoped session of the current test app."""
    return _db.session


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to the app session -----------------------------------
@pytest.fixture()
def factories(session):
    """Wire Factory Boy's session helper to the current test database."""
    from tests.factories import bind_session

    bind_session(session)
    yield
    bind_session(None)


# --------------------------- In-memory service ----------------------------- #


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(method=TestingConfig.PASSWORD_HASH_METHOD)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def codec() -> PyJWTTokenCodec:
    return PyJWTTokenCodec()


@pytest.fixture()
def token_cfg() -> AuthTokenConfig:
    return AuthTokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture()
def make_service(hasher, codec, token_cfg):
    """Build an AuthService wired to in-memory doubles."""

    def _make(**cfg_overrides) -> AuthService:
        cfg = token_cfg
        if cfg_overrides:
            cfg = AuthTokenConfig(
                **{
                    "access_secret": token_cfg.access_secret,
                    "refresh_secret": token_cfg.refresh_secret,
                    "access_expires": token_cfg.access_expires,
                    "refresh_expires": token_cfg.refresh_expires,
                    "rotate_refresh_on_use": token_cfg.rotate_refresh_on_use,
                    **cfg_overrides,
                }
            )
        return AuthService(
            credentials=InMemoryCredentialStore(hasher),
            ledger=InMemoryRefreshTokenLedger(),
            codec=codec,
            token_cfg=cfg,
            hasher=hasher,
        )

    return _make


@pytest.fixture()
def service(make_service) -> AuthService:
    return make_service()
