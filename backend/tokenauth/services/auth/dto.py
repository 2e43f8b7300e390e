# tokenauth/services/auth/dto.py
"""Plain data carriers crossing the auth service boundary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class Credentials:
    """Email/password pair as submitted by the client (not yet normalized)."""

    email: str
    password: str


class RegisterIn(Credentials):
    """Registration request."""

    __slots__ = ()


class LoginIn(Credentials):
    """Login request."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class RefreshIn:
    # ``None`` or "" both mean the client sent no token.
    refresh_token: str | None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Logout request.

    ``all_sessions`` revokes every refresh token of the owner resolved from
    ``refresh_token``; without a resolvable token it is a no-op.
    """

    refresh_token: str | None = None
    all_sessions: bool = False


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """Public identity view; never carries the password hash."""

    email: str


@dataclass(frozen=True, slots=True)
class AuthSessionOut:
    """Token pair issued by login and registration, with the public user view."""

    access_token: str
    refresh_token: str
    user: UserPublicOut


@dataclass(frozen=True, slots=True)
class RefreshOut:
    # refresh_token is only set when rotation is enabled.
    access_token: str
    refresh_token: str | None = None


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission settings, built from ``app.config`` by the HTTP layer.

    The two secrets must differ; lifetimes default to 15 minutes (access)
    and 7 days (refresh). With ``rotate_refresh_on_use`` every refresh
    revokes the presented token and records a replacement.
    """

    access_secret: str
    refresh_secret: str
    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)
    rotate_refresh_on_use: bool = False
