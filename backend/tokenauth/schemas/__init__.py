"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    LogoutSchema,
    RefreshResponseSchema,
    RefreshSchema,
    RegisterSchema,
    SessionResponseSchema,
    UserPublicSchema,
)

__all__ = [
    "LoginSchema",
    "LogoutSchema",
    "RefreshResponseSchema",
    "RefreshSchema",
    "RegisterSchema",
    "SessionResponseSchema",
    "UserPublicSchema",
]
