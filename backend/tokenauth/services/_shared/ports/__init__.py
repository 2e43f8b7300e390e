"""
tokenauth.services._shared.ports
================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token management and authentication infrastructure.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec` : signing and parsing of access/refresh tokens,
    plus the :class:`~.TokenError` family.

- :mod:`refresh_token_ledger`:
    Defines :class:`~.RefreshTokenLedger` and :class:`~.LedgerRecord` : the
    durable registry of refresh tokens and their revocation state.

- :mod:`credential_store`:
    Defines :class:`~.CredentialStore` and :class:`~.UserIdentity` : lookup,
    verification and creation of user identities.

Design Notes
------------
Concrete adapters (SQLAlchemy, Redis, PyJWT) live under ``tokenauth.infra``;
the in-memory doubles here back unit tests.
"""

from __future__ import annotations

from .credential_store import (
    CredentialStore,
    IdentityExistsError,
    InMemoryCredentialStore,
    UserIdentity,
    normalize_email,
)
from .refresh_token_ledger import (
    InMemoryRefreshTokenLedger,
    LedgerRecord,
    RefreshTokenLedger,
    StoreError,
)
from .token_codec import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    IssuedToken,
    TokenClaims,
    TokenCodec,
    TokenError,
    TokenExpiredError,
    TokenKindError,
    TokenSignatureError,
)

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "CredentialStore",
    "IdentityExistsError",
    "InMemoryCredentialStore",
    "InMemoryRefreshTokenLedger",
    "IssuedToken",
    "LedgerRecord",
    "RefreshTokenLedger",
    "StoreError",
    "TokenClaims",
    "TokenCodec",
    "TokenError",
    "TokenExpiredError",
    "TokenKindError",
    "TokenSignatureError",
    "UserIdentity",
    "normalize_email",
]
