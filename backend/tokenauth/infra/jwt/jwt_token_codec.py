# tokenauth/infra/jwt/jwt_token_codec.py
from __future__ import annotations

import binascii
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt.utils import base64url_decode, base64url_encode

from tokenauth.services._shared.ports.token_codec import (
    TOKEN_KINDS,
    IssuedToken,
    TokenClaims,
    TokenCodec,
    TokenExpiredError,
    TokenKindError,
    TokenSignatureError,
)

HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
REQUIRED_CLAIMS = ["sub", "type", "iat", "exp"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class PyJWTTokenCodec(TokenCodec):
    """
    HMAC-signed JWT codec backed by PyJWT.

    Expiry is evaluated here against ``clock`` rather than by PyJWT, so that a
    token stays valid up to and including its ``exp`` second and tests can pin
    the current time.

    :param algorithm: HMAC algorithm name (``HS256`` by default).
    :param clock: Callable returning the current aware UTC datetime.
    """

    algorithm: str = "HS256"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def __post_init__(self) -> None:
        if self.algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"Unsupported token algorithm: {self.algorithm!r}")

    # ---- issuing ---------------------------------------------------------- #

    def issue(
        self, kind: str, subject: int | str, email: str, secret: str, ttl: timedelta
    ) -> str:
        return self.issue_token(kind, subject, email, secret, ttl).value

    def issue_token(
        self, kind: str, subject: int | str, email: str, secret: str, ttl: timedelta
    ) -> IssuedToken:
        """
        Sign a new token.

        :param kind: ``"access"`` or ``"refresh"``.
        :param subject: User identifier; stored as a string ``sub``.
        :param email: User email embedded in the claims.
        :param secret: HMAC secret for this token kind.
        :param ttl: Lifetime added to the issue time.
        :returns: Token string and the exact claims it carries.
        :rtype: IssuedToken
        :raises ValueError: On unknown kind, empty secret or non-positive ttl.
        """
        if kind not in TOKEN_KINDS:
            raise ValueError(f"Unknown token kind: {kind!r}")
        if not secret:
            raise ValueError("Token secret must not be empty.")
        if ttl <= timedelta(0):
            raise ValueError("Token ttl must be positive.")

        iat = int(self.clock().timestamp())
        exp = iat + int(ttl.total_seconds())
        claims = TokenClaims(
            subject=str(subject),
            email=email,
            kind=kind,
            issued_at=datetime.fromtimestamp(iat, tz=UTC),
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
            jti=uuid.uuid4().hex,
        )
        payload: dict[str, Any] = {
            "sub": claims.subject,
            "email": claims.email,
            "type": claims.kind,
            "iat": iat,
            "exp": exp,
            "jti": claims.jti,
        }
        token = jwt.encode(payload, secret, algorithm=self.algorithm)
        return IssuedToken(value=token, claims=claims)

    # ---- verifying -------------------------------------------------------- #

    def verify(self, token: str, secret: str, *, expected_kind: str | None = None) -> TokenClaims:
        """
        Check signature, then expiry, then kind.

        :raises TokenSignatureError: Wrong secret, tampered or malformed token.
        :raises TokenExpiredError: Valid signature but ``now > exp``.
        :raises TokenKindError: Valid token of the other kind.
        """
        if not isinstance(token, str) or not token or not secret:
            raise TokenSignatureError("Token is empty.")
        self._ensure_canonical_signature(token)

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenSignatureError(str(exc)) from exc

        claims = self._to_claims(payload)
        if self.clock() > claims.expires_at:
            raise TokenExpiredError("Token has expired.")
        if expected_kind is not None and claims.kind != expected_kind:
            raise TokenKindError(f"Expected {expected_kind} token, got {claims.kind}.")
        return claims

    @staticmethod
    def _ensure_canonical_signature(token: str) -> None:
        # Trailing base64url bits are ignored by decoders; re-encoding exposes edits there.
        parts = token.split(".")
        if len(parts) != 3 or not parts[2]:
            raise TokenSignatureError("Malformed token.")
        signature = parts[2]
        try:
            raw = base64url_decode(signature.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
            raise TokenSignatureError("Malformed signature.") from exc
        if base64url_encode(raw).decode("ascii") != signature:
            raise TokenSignatureError("Non-canonical signature encoding.")

    @staticmethod
    def _to_claims(payload: dict[str, Any]) -> TokenClaims:
        kind = payload.get("type")
        subject = payload.get("sub")
        email = payload.get("email", "")
        if kind not in TOKEN_KINDS or not isinstance(subject, str) or not isinstance(email, str):
            raise TokenSignatureError("Unexpected token payload.")
        try:
            iat = int(payload["iat"])
            exp = int(payload["exp"])
        except (TypeError, ValueError) as exc:
            raise TokenSignatureError("Invalid timestamps.") from exc
        return TokenClaims(
            subject=subject,
            email=email,
            kind=kind,
            issued_at=datetime.fromtimestamp(iat, tz=UTC),
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
            jti=str(payload.get("jti", "")),
        )
