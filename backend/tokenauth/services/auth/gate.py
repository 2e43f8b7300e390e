# tokenauth/services/auth/gate.py
"""Bearer access-token check run in front of protected operations."""

from __future__ import annotations

from dataclasses import dataclass

from tokenauth.services._shared.errors import (
    ACCESS_EXPIRED,
    MISSING_TOKEN,
    AuthenticationError,
    AuthorizationError,
)
from tokenauth.services._shared.ports.token_codec import (
    ACCESS_TOKEN_TYPE,
    TokenClaims,
    TokenCodec,
    TokenError,
    TokenExpiredError,
)

BEARER_SCHEME = "bearer"


@dataclass(slots=True)
class VerificationGate:
    """
    Judge an ``Authorization`` header purely by signature and expiry.

    The ledger is never consulted here; access tokens stay valid until they
    expire even after logout.

    :param codec: Token parser.
    :param access_secret: Secret access tokens are signed with.
    """

    codec: TokenCodec
    access_secret: str

    @staticmethod
    def extract_bearer(header: str | None) -> str:
        """
        Return the token of an exact ``"Bearer <token>"`` header.

        The scheme is matched case-insensitively; anything other than two
        parts separated by a single space is rejected.

        :raises AuthenticationError: ``missing_token``.
        """
        if not header:
            raise AuthenticationError(MISSING_TOKEN)
        parts = header.split(" ")
        if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME or not parts[1]:
            raise AuthenticationError(MISSING_TOKEN)
        return parts[1]

    def authenticate(self, header: str | None) -> TokenClaims:
        """
        Validate the bearer access token in ``header``.

        :returns: Decoded claims (subject id and email).
        :raises AuthenticationError: ``missing_token`` or ``access_expired``.
        :raises AuthorizationError: Any other verification failure.
        """
        token = self.extract_bearer(header)
        try:
            return self.codec.verify(token, self.access_secret, expected_kind=ACCESS_TOKEN_TYPE)
        except TokenExpiredError as exc:
            raise AuthenticationError(ACCESS_EXPIRED) from exc
        except TokenError as exc:
            raise AuthorizationError() from exc
