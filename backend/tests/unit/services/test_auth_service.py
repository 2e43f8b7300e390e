# tests/unit/services/test_auth_service.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest

from tokenauth.services._shared.errors import (
    INVALID_CREDENTIALS,
    INVALID_OR_EXPIRED,
    MISSING_TOKEN,
    REVOKED_OR_UNKNOWN,
    AuthenticationError,
    ConflictError,
    InternalError,
    ValidationError,
)
from tokenauth.services._shared.ports import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InMemoryRefreshTokenLedger,
    LedgerRecord,
    StoreError,
)
from tokenauth.services.auth import (
    AuthSessionOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RefreshOut,
    RegisterIn,
    UserPublicOut,
)


class BrokenLedger(InMemoryRefreshTokenLedger):
    """Ledger whose every call fails like an unreachable backend."""

    def put(self, owner_id, token, expires_at):
        raise StoreError("down")

    def find_active(self, token):
        raise StoreError("down")

    def get(self, token):
        raise StoreError("down")

    def revoke(self, token):
        raise StoreError("down")

    def revoke_all(self, owner_id):
        raise StoreError("down")


def _future() -> datetime:
    return datetime.now(UTC) + timedelta(days=1)


# ------------------------------ Register ---------------------------------- #


def test_register_returns_tokens_and_public_user(service):
    out = service.register(RegisterIn(email="b@x.com", password="longpw123"))

    assert isinstance(out, AuthSessionOut)
    assert out.user == UserPublicOut(email="b@x.com")
    assert service.ledger.find_active(out.refresh_token) is not None


def test_register_twice_is_conflict_and_keeps_single_identity(service):
    service.register(RegisterIn(email="b@x.com", password="longpw123"))

    with pytest.raises(ConflictError):
        service.register(RegisterIn(email="b@x.com", password="other"))
    assert len(service.credentials) == 1


def test_register_normalizes_email(service):
    service.register(RegisterIn(email="  Mixed@Example.COM ", password="pw"))

    with pytest.raises(ConflictError):
        service.register(RegisterIn(email="mixed@example.com", password="pw"))
    out = service.login(LoginIn(email="MIXED@example.com", password="pw"))
    assert out.user.email == "mixed@example.com"


def test_register_stores_a_salted_hash(service):
    service.register(RegisterIn(email="b@x.com", password="longpw123"))

    identity = service.credentials.find_by_email("b@x.com")
    assert identity.password_hash != "longpw123"
    assert service.credentials.verify_password("longpw123", identity.password_hash)


@pytest.mark.parametrize("email,password", [("", "pw"), ("a@x.com", ""), ("   ", "pw"), (None, None)])
def test_register_requires_fields(service, email, password):
    with pytest.raises(ValidationError):
        service.register(RegisterIn(email=email, password=password))


def test_register_lost_race_maps_to_conflict(service, monkeypatch):
    # find_by_email misses, then the insert hits the unique constraint
    service.credentials.create("b@x.com", "hash")
    monkeypatch.setattr(service.credentials, "find_by_email", lambda email: None)

    with pytest.raises(ConflictError):
        service.register(RegisterIn(email="b@x.com", password="pw"))


# -------------------------------- Login ----------------------------------- #


def test_login_succeeds_only_with_the_registered_password(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))

    out = service.login(LoginIn(email="a@x.com", password="secret123"))
    assert out.user.email == "a@x.com"

    for wrong in ("secret124", "SECRET123", "secret123 ", "x"):
        with pytest.raises(AuthenticationError) as err:
            service.login(LoginIn(email="a@x.com", password=wrong))
        assert err.value.reason == INVALID_CREDENTIALS


def test_login_unknown_user_is_indistinguishable(service, monkeypatch):
    calls = []
    original = service.credentials.verify_password

    def _spy(plain, password_hash):
        calls.append(password_hash)
        return original(plain, password_hash)

    monkeypatch.setattr(service.credentials, "verify_password", _spy)

    with pytest.raises(AuthenticationError) as err:
        service.login(LoginIn(email="ghost@x.com", password="whatever"))

    assert err.value.reason == INVALID_CREDENTIALS
    assert calls == [service.hasher.dummy_hash()]


@pytest.mark.parametrize("email,password", [("", "pw"), ("a@x.com", ""), (None, "pw")])
def test_login_requires_fields(service, email, password):
    with pytest.raises(ValidationError):
        service.login(LoginIn(email=email, password=password))


def test_login_issues_tokens_of_each_kind(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    out = service.login(LoginIn(email="a@x.com", password="secret123"))

    access = service.codec.verify(out.access_token, service.cfg.access_secret)
    refresh = service.codec.verify(out.refresh_token, service.cfg.refresh_secret)
    assert access.kind == ACCESS_TOKEN_TYPE
    assert refresh.kind == REFRESH_TOKEN_TYPE
    assert access.subject == refresh.subject
    assert refresh.expires_at - refresh.issued_at == timedelta(days=7)
    assert access.expires_at - access.issued_at == timedelta(minutes=15)


def test_login_revokes_previous_session(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    first = service.login(LoginIn(email="a@x.com", password="secret123"))
    second = service.login(LoginIn(email="a@x.com", password="secret123"))

    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token=first.refresh_token))
    assert err.value.reason == REVOKED_OR_UNKNOWN
    assert service.refresh(RefreshIn(refresh_token=second.refresh_token)).access_token


def test_concurrent_logins_leave_one_active_record(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    owner = service.credentials.find_by_email("a@x.com").id

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(
                lambda _: service.login(LoginIn(email="a@x.com", password="secret123")),
                range(16),
            )
        )

    active = service.ledger.list_active(str(owner))
    assert len(active) == 1

    survivor = active[0].token
    assert survivor in {r.refresh_token for r in results}
    assert service.refresh(RefreshIn(refresh_token=survivor)).access_token
    for r in results:
        if r.refresh_token == survivor:
            continue
        with pytest.raises(AuthenticationError):
            service.refresh(RefreshIn(refresh_token=r.refresh_token))


def test_login_store_failure_is_internal_error(make_service):
    service = make_service()
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    service.ledger = BrokenLedger()

    with pytest.raises(InternalError):
        service.login(LoginIn(email="a@x.com", password="secret123"))


def test_credential_store_failure_is_internal_error(service, monkeypatch):
    def _boom(email):
        raise StoreError("db down")

    monkeypatch.setattr(service.credentials, "find_by_email", _boom)

    with pytest.raises(InternalError):
        service.login(LoginIn(email="a@x.com", password="secret123"))
    with pytest.raises(InternalError):
        service.register(RegisterIn(email="a@x.com", password="secret123"))


# ------------------------------- Refresh ---------------------------------- #


def test_login_refresh_logout_scenario(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))

    out = service.refresh(RefreshIn(refresh_token=session.refresh_token))
    assert isinstance(out, RefreshOut)
    assert out.access_token != session.access_token
    assert out.refresh_token is None
    assert service.codec.verify(out.access_token, service.cfg.access_secret).email == "a@x.com"

    service.logout(LogoutIn(refresh_token=session.refresh_token))

    with pytest.raises(AuthenticationError):
        service.refresh(RefreshIn(refresh_token=session.refresh_token))


def test_refresh_without_rotation_keeps_token_usable(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))

    service.refresh(RefreshIn(refresh_token=session.refresh_token))
    assert service.refresh(RefreshIn(refresh_token=session.refresh_token)).access_token


@pytest.mark.parametrize("token", [None, ""])
def test_refresh_missing_token(service, token):
    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token=token))
    assert err.value.reason == MISSING_TOKEN


def test_refresh_signed_but_unrecorded_token_is_unknown(service):
    forged = service.codec.issue(
        REFRESH_TOKEN_TYPE, 1, "a@x.com", service.cfg.refresh_secret, timedelta(days=7)
    )

    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token=forged))
    assert err.value.reason == REVOKED_OR_UNKNOWN


def test_refresh_recorded_but_invalid_token(service):
    service.ledger.put("1", "not-a-jwt", _future())

    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token="not-a-jwt"))
    assert err.value.reason == INVALID_OR_EXPIRED


def test_refresh_rejects_access_token_even_if_recorded(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))
    owner = service.codec.verify(session.access_token, service.cfg.access_secret).subject
    service.ledger.put(owner, session.access_token, _future())

    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token=session.access_token))
    assert err.value.reason == INVALID_OR_EXPIRED


def test_refresh_rejects_token_recorded_for_another_owner(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))
    service.ledger.put("999", session.refresh_token, _future())

    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token=session.refresh_token))
    assert err.value.reason == INVALID_OR_EXPIRED


def test_refresh_store_failure_is_internal_error(service):
    service.ledger = BrokenLedger()

    with pytest.raises(InternalError):
        service.refresh(RefreshIn(refresh_token="anything"))


def test_refresh_with_rotation_replaces_the_token(make_service):
    service = make_service(rotate_refresh_on_use=True)
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))

    out = service.refresh(RefreshIn(refresh_token=session.refresh_token))

    assert out.refresh_token is not None
    assert out.refresh_token != session.refresh_token
    with pytest.raises(AuthenticationError) as err:
        service.refresh(RefreshIn(refresh_token=session.refresh_token))
    assert err.value.reason == REVOKED_OR_UNKNOWN
    assert service.refresh(RefreshIn(refresh_token=out.refresh_token)).refresh_token


# -------------------------------- Logout ---------------------------------- #


@pytest.mark.parametrize("token", [None, "", "unknown-token"])
def test_logout_never_fails(service, token):
    assert service.logout(LogoutIn(refresh_token=token)) is None


def test_logout_is_idempotent(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))

    service.logout(LogoutIn(refresh_token=session.refresh_token))
    service.logout(LogoutIn(refresh_token=session.refresh_token))

    record = service.ledger.get(session.refresh_token)
    assert record is not None and record.revoked is True


def test_logout_swallows_store_failures(service):
    service.ledger = BrokenLedger()

    assert service.logout(LogoutIn(refresh_token="tok", all_sessions=True)) is None


def test_logout_all_sessions_revokes_every_owner_record(service):
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))
    owner = service.ledger.get(session.refresh_token).owner_id
    # A record that bypassed put, e.g. written by an older deployment
    service.ledger._by_token["legacy"] = LedgerRecord(
        owner_id=owner, token="legacy", revoked=False, expires_at=_future()
    )
    service.ledger._by_owner[owner].add("legacy")

    service.logout(LogoutIn(refresh_token=session.refresh_token, all_sessions=True))

    assert service.ledger.list_active(owner) == []


def test_access_token_survives_logout(service):
    """Access tokens are judged by signature and expiry only."""
    service.register(RegisterIn(email="a@x.com", password="secret123"))
    session = service.login(LoginIn(email="a@x.com", password="secret123"))

    service.logout(LogoutIn(refresh_token=session.refresh_token))

    claims = service.codec.verify(session.access_token, service.cfg.access_secret)
    assert service.verify(claims) == UserPublicOut(email="a@x.com")
