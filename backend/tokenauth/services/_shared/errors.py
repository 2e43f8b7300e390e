"""
Service-layer failures.

Nothing here knows about Flask or HTTP. ``BaseService.translate_exceptions``
turns each class into its problem+json counterpart (400/401/403/409/500).
"""

from __future__ import annotations

from dataclasses import dataclass

# Authentication failure reasons; surfaced verbatim as the problem ``code``.
INVALID_CREDENTIALS = "invalid_credentials"
MISSING_TOKEN = "missing_token"
REVOKED_OR_UNKNOWN = "revoked_or_unknown"
INVALID_OR_EXPIRED = "invalid_or_expired"
ACCESS_EXPIRED = "access_expired"

_AUTH_MESSAGES = {
    INVALID_CREDENTIALS: "Invalid email or password",
    MISSING_TOKEN: "Token is required",
    REVOKED_OR_UNKNOWN: "Refresh token is revoked or unknown",
    INVALID_OR_EXPIRED: "Refresh token is invalid or expired",
    ACCESS_EXPIRED: "Access token expired",
}


class ServiceError(Exception):
    """Root of every error the auth services raise on purpose."""


class ValidationError(ServiceError):
    def __init__(self, message: str = "Email and password are required") -> None:
        super().__init__(message)


@dataclass(slots=True)
class AuthenticationError(ServiceError):
    """Credentials or a token were not accepted; ``reason`` is one of the module constants."""

    reason: str

    def __str__(self) -> str:
        return _AUTH_MESSAGES.get(self.reason, "Authentication failed")


class AuthorizationError(ServiceError):
    """The gate rejected an access token for any reason other than expiry."""

    def __init__(self, message: str = "Invalid access token") -> None:
        super().__init__(message)


@dataclass(slots=True)
class ConflictError(ServiceError):
    entity: str
    detail: str

    def __str__(self) -> str:
        return f"{self.entity} conflict: {self.detail}"


class InternalError(ServiceError):
    """
    A backing store failed.

    Clients only see the generic message. The driver exception stays on
    ``__cause__`` for the server log.
    """

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)
