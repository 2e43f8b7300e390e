# tests/integration/test_auth_api.py
"""
End-to-end checks of the auth endpoints through the Flask test client.

Each test runs against a fresh app and in-memory SQLite database; the SQL
ledger is used unless a test overrides ``LEDGER_BACKEND``.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from tests.helpers.auth import AUTH, bearer, login, logout, refresh, register, verify

EMAIL = "a@example.com"
PASSWORD = "secret123"


def _problem(resp) -> dict:
    assert resp.mimetype == "application/problem+json"
    return resp.get_json()


@pytest.fixture()
def registered(client):
    resp = register(client, EMAIL, PASSWORD)
    assert resp.status_code == 201
    return resp.get_json()["data"]


class TestRegister:
    def test_register_returns_session(self, client):
        resp = register(client, EMAIL, PASSWORD)

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["access_token"] and data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["user"] == {"email": EMAIL}
        assert "password" not in resp.get_data(as_text=True)

    def test_register_twice_is_conflict(self, client, registered):
        resp = register(client, EMAIL, "another-password")

        assert resp.status_code == 409
        assert _problem(resp)["code"] == "already_registered"

    def test_register_conflict_ignores_case(self, client, registered):
        resp = register(client, EMAIL.upper(), PASSWORD)

        assert resp.status_code == 409

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"email": EMAIL},
            {"password": PASSWORD},
            {"email": "", "password": PASSWORD},
            {"email": EMAIL, "password": ""},
            {"email": "not-an-email", "password": PASSWORD},
        ],
    )
    def test_register_validation(self, client, body):
        resp = client.post(f"{AUTH}/register", json=body)

        assert resp.status_code == 400
        assert _problem(resp)["code"] == "validation_error"

    def test_register_without_json_body(self, client):
        resp = client.post(f"{AUTH}/register", data="nope", content_type="text/plain")

        assert resp.status_code == 400


class TestLogin:
    def test_login_success(self, client, registered):
        resp = login(client, EMAIL, PASSWORD)

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["user"] == {"email": EMAIL}
        assert data["refresh_token"] != registered["refresh_token"]

    @pytest.mark.parametrize(
        "email,password",
        [(EMAIL, "wrong-password"), ("ghost@example.com", PASSWORD), ("garbage", PASSWORD)],
    )
    def test_login_failures_look_identical(self, client, registered, email, password):
        resp = login(client, email, password)

        assert resp.status_code == 401
        problem = _problem(resp)
        assert problem["code"] == "invalid_credentials"
        assert problem["detail"] == "Invalid email or password"

    def test_login_requires_fields(self, client):
        resp = client.post(f"{AUTH}/login", json={"email": EMAIL})

        assert resp.status_code == 400

    def test_login_replaces_previous_session(self, client, registered):
        first = login(client, EMAIL, PASSWORD).get_json()["data"]
        second = login(client, EMAIL, PASSWORD).get_json()["data"]

        assert refresh(client, first["refresh_token"]).status_code == 401
        assert refresh(client, second["refresh_token"]).status_code == 200


class TestRefresh:
    def test_refresh_returns_new_access_token(self, client, registered):
        resp = refresh(client, registered["refresh_token"])

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["access_token"] != registered["access_token"]
        assert "refresh_token" not in data
        assert verify(client, bearer(data["access_token"])).status_code == 200

    @pytest.mark.parametrize("body", [{}, {"refresh_token": None}, {"refresh_token": ""}])
    def test_refresh_missing_token(self, client, body):
        resp = client.post(f"{AUTH}/refresh", json=body)

        assert resp.status_code == 401
        assert _problem(resp)["code"] == "missing_token"

    def test_refresh_unknown_token(self, client):
        resp = refresh(client, "not-a-real-token")

        assert resp.status_code == 401
        assert _problem(resp)["code"] == "revoked_or_unknown"

    def test_access_token_is_not_a_refresh_token(self, client, registered):
        resp = refresh(client, registered["access_token"])

        assert resp.status_code == 401

    def test_rotation_when_enabled(self, app_factory):
        client = app_factory(ROTATE_REFRESH_ON_USE=True).test_client()
        session = register(client, EMAIL, PASSWORD).get_json()["data"]

        resp = refresh(client, session["refresh_token"])

        assert resp.status_code == 200
        rotated = resp.get_json()["data"]["refresh_token"]
        assert rotated != session["refresh_token"]
        assert refresh(client, session["refresh_token"]).status_code == 401
        assert refresh(client, rotated).status_code == 200

    def test_refresh_token_expires_after_seven_days(self, client):
        with freeze_time("2030-01-01 12:00:00") as frozen:
            session = register(client, EMAIL, PASSWORD).get_json()["data"]

            frozen.tick(delta=timedelta(seconds=7 * 24 * 3600 - 1))
            assert refresh(client, session["refresh_token"]).status_code == 200

            frozen.tick(delta=timedelta(seconds=2))
            resp = refresh(client, session["refresh_token"])
            assert resp.status_code == 401


class TestVerify:
    def test_verify_returns_identity(self, client, registered):
        resp = verify(client, bearer(registered["access_token"]))

        assert resp.status_code == 200
        assert resp.get_json() == {"data": {"user": {"email": EMAIL}}}

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": ""},
            {"Authorization": "Bearer"},
            {"Authorization": "Token abc"},
            {"Authorization": "Bearer a b"},
        ],
    )
    def test_verify_missing_token(self, client, headers):
        resp = verify(client, headers)

        assert resp.status_code == 401
        assert _problem(resp)["code"] == "missing_token"

    def test_verify_invalid_token_is_forbidden(self, client, registered):
        resp = verify(client, bearer(registered["refresh_token"]))

        assert resp.status_code == 403
        assert _problem(resp)["code"] == "forbidden"

    def test_verify_garbage_is_forbidden(self, client):
        assert verify(client, bearer("abc.def.ghi")).status_code == 403

    def test_access_token_expiry(self, client):
        with freeze_time("2030-01-01 12:00:00") as frozen:
            session = register(client, EMAIL, PASSWORD).get_json()["data"]
            headers = bearer(session["access_token"])

            frozen.tick(delta=timedelta(seconds=15 * 60))
            assert verify(client, headers).status_code == 200

            frozen.tick(delta=timedelta(seconds=1))
            resp = verify(client, headers)
            assert resp.status_code == 401
            assert _problem(resp)["code"] == "access_expired"

    def test_access_token_outlives_logout(self, client, registered):
        logout(client, registered["refresh_token"])

        assert verify(client, bearer(registered["access_token"])).status_code == 200


class TestLogout:
    def test_login_refresh_logout_scenario(self, client, registered):
        session = login(client, EMAIL, PASSWORD).get_json()["data"]
        assert refresh(client, session["refresh_token"]).status_code == 200

        resp = logout(client, session["refresh_token"])
        assert resp.status_code == 200
        assert resp.get_json() == {"data": {"message": "Logged out successfully"}}

        again = refresh(client, session["refresh_token"])
        assert again.status_code == 401
        assert _problem(again)["code"] == "revoked_or_unknown"

    @pytest.mark.parametrize("token", [None, "", "unknown", "a.b.c"])
    def test_logout_always_succeeds(self, client, token):
        assert logout(client, token).status_code == 200

    def test_logout_with_malformed_body(self, client):
        resp = client.post(f"{AUTH}/logout", json={"refresh_token": 12, "all_sessions": "maybe"})
        assert resp.status_code == 200

        resp = client.post(f"{AUTH}/logout", data="{broken", content_type="application/json")
        assert resp.status_code == 200

    def test_logout_all_sessions(self, client, registered):
        resp = logout(client, registered["refresh_token"], all_sessions=True)

        assert resp.status_code == 200
        assert refresh(client, registered["refresh_token"]).status_code == 401


class TestBackends:
    @pytest.mark.parametrize("backend", ["memory", "sql"])
    def test_full_flow(self, app_factory, backend):
        client = app_factory(LEDGER_BACKEND=backend).test_client()

        session = register(client, EMAIL, PASSWORD).get_json()["data"]
        assert refresh(client, session["refresh_token"]).status_code == 200
        assert logout(client, session["refresh_token"]).status_code == 200
        assert refresh(client, session["refresh_token"]).status_code == 401

    def test_redis_backend_requires_url(self, app_factory):
        with pytest.raises(RuntimeError):
            app_factory(LEDGER_BACKEND="redis", REDIS_URL=None)

    def test_unknown_backend(self, app_factory):
        with pytest.raises(RuntimeError):
            app_factory(LEDGER_BACKEND="carrier-pigeon")


class TestPlumbing:
    def test_login_rate_limit(self, app_factory):
        client = app_factory(RATELIMIT_ENABLED=True, AUTH_LOGIN_RATE_LIMIT="2 per minute").test_client()

        statuses = [login(client, EMAIL, "wrong").status_code for _ in range(3)]

        assert statuses == [401, 401, 429]

    def test_health(self, client):
        resp = client.get("/api/v1/health")

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"
        assert resp.get_json()["db"] == "ok"
        assert resp.get_json()["ledger"] == "sql"

    def test_unknown_route_is_problem_json(self, client):
        resp = client.get("/api/v1/nope")

        assert resp.status_code == 404
        assert _problem(resp)["code"] == "not_found"

    def test_request_id_is_echoed(self, client):
        resp = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})

        assert resp.headers["X-Request-ID"] == "req-123"
