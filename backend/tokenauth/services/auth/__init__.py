"""Token lifecycle service package."""

from tokenauth.services.auth.dto import (
    AuthSessionOut,
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RefreshOut,
    RegisterIn,
    UserPublicOut,
)
from tokenauth.services.auth.gate import VerificationGate
from tokenauth.services.auth.service import AuthService

__all__ = [
    "AuthService",
    "AuthSessionOut",
    "AuthTokenConfig",
    "LoginIn",
    "LogoutIn",
    "RefreshIn",
    "RefreshOut",
    "RegisterIn",
    "UserPublicOut",
    "VerificationGate",
]
