"""Authentication endpoints using the token lifecycle service."""

from __future__ import annotations

from flask import Blueprint, current_app, g, request
from marshmallow import ValidationError as MarshmallowValidationError

from tokenauth.api.deps import (
    get_auth_service,
    json_response,
    require_access_token,
    timing,
    translate_service_errors,
)
from tokenauth.core.extensions import limiter
from tokenauth.schemas import (
    LoginSchema,
    LogoutSchema,
    RefreshResponseSchema,
    RefreshSchema,
    RegisterSchema,
    SessionResponseSchema,
    UserPublicSchema,
)
from tokenauth.services.auth import LoginIn, LogoutIn, RefreshIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
session_schema = SessionResponseSchema()
refresh_response_schema = RefreshResponseSchema()
user_schema = UserPublicSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


@bp.post("/register")
@timing
@translate_service_errors
def register():
    """Create an account and return its first token pair."""

    data = register_schema.load(request.get_json(silent=True) or {})
    session = get_auth_service().register(RegisterIn(email=data["email"], password=data["password"]))
    return json_response({"data": session_schema.dump(session)}, status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
@translate_service_errors
def login():
    """Authenticate credentials and issue an access/refresh pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    session = get_auth_service().login(LoginIn(email=data["email"], password=data["password"]))
    return json_response({"data": session_schema.dump(session)})


@bp.post("/refresh")
@timing
@translate_service_errors
def refresh():
    """Exchange a refresh token for a new access token."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    out = get_auth_service().refresh(RefreshIn(refresh_token=data["refresh_token"]))
    body = refresh_response_schema.dump(out)
    if body.get("refresh_token") is None:
        body.pop("refresh_token", None)
    return json_response({"data": body})


@bp.get("/verify")
@require_access_token
@timing
def verify():
    """Return the identity carried by the bearer access token."""

    user = get_auth_service().verify(g.identity)
    return json_response({"data": {"user": user_schema.dump(user)}})


@bp.post("/logout")
@timing
def logout():
    """Revoke the presented refresh token; always succeeds."""

    payload = request.get_json(silent=True)
    try:
        data = logout_schema.load(payload if isinstance(payload, dict) else {})
    except MarshmallowValidationError:
        current_app.logger.warning("auth.logout.malformed_body")
        data = {}
    get_auth_service().logout(
        LogoutIn(refresh_token=data.get("refresh_token"), all_sessions=data.get("all_sessions", False))
    )
    return json_response({"data": {"message": "Logged out successfully"}})
