"""Service layer: the token lifecycle manager, the verification gate and their DTOs."""

from __future__ import annotations

from ._shared.base import BaseService
from .auth import (
    AuthService,
    AuthSessionOut,
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RefreshOut,
    RegisterIn,
    UserPublicOut,
    VerificationGate,
)

__all__ = [
    "AuthService",
    "AuthSessionOut",
    "AuthTokenConfig",
    "BaseService",
    "LoginIn",
    "LogoutIn",
    "RefreshIn",
    "RefreshOut",
    "RegisterIn",
    "UserPublicOut",
    "VerificationGate",
]
