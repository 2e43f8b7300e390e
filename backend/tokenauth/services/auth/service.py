# tokenauth/services/auth/service.py
from __future__ import annotations

import logging

from tokenauth.core.security import PasswordHasher
from tokenauth.services._shared.base import BaseService
from tokenauth.services._shared.errors import (
    INVALID_CREDENTIALS,
    INVALID_OR_EXPIRED,
    MISSING_TOKEN,
    REVOKED_OR_UNKNOWN,
    AuthenticationError,
    ConflictError,
    InternalError,
    ValidationError,
)
from tokenauth.services._shared.ports.credential_store import (
    CredentialStore,
    IdentityExistsError,
    UserIdentity,
    normalize_email,
)
from tokenauth.services._shared.ports.refresh_token_ledger import (
    RefreshTokenLedger,
    StoreError,
)
from tokenauth.services._shared.ports.token_codec import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenClaims,
    TokenCodec,
    TokenError,
)

# DTOs
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

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Token lifecycle manager (register / login / refresh / logout / verify).

    Tokens are signed by a pluggable :class:`TokenCodec`; refresh tokens are
    tracked in a :class:`RefreshTokenLedger`, which is the only authority on
    revocation. Identities come from a :class:`CredentialStore`.

    Store failures never escape as driver errors: they become
    :class:`InternalError`, except during logout, which always succeeds.
    """

    def __init__(
        self,
        *,
        credentials: CredentialStore,
        ledger: RefreshTokenLedger,
        codec: TokenCodec,
        token_cfg: AuthTokenConfig,
        hasher: PasswordHasher | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param credentials: User lookup / creation port.
        :param ledger: Refresh token ledger.
        :param codec: Token signer/parser.
        :param token_cfg: Secrets, lifetimes and the rotation flag.
        :param hasher: Password hasher for registration and timing equalization.
        """
        self.credentials = credentials
        self.ledger = ledger
        self.codec = codec
        self.cfg = token_cfg
        self.hasher = hasher or PasswordHasher()

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthSessionOut:
        """
        Create an identity and open its first session.

        :raises ValidationError: Empty email/password or malformed email.
        :raises ConflictError: Email already registered.
        :raises InternalError: Store failure.
        """
        email, password = self._require_credentials(dto.email, dto.password)
        email = normalize_email(email)

        try:
            if self.credentials.find_by_email(email) is not None:
                raise ConflictError("User", "email already registered")
            user = self.credentials.create(email, self.hasher.hash(password))
        except IdentityExistsError as exc:
            # Lost a race with a concurrent registration of the same email
            raise ConflictError("User", "email already registered") from exc
        except StoreError as exc:
            log.error("auth.register.store_failed", exc_info=True)
            raise InternalError() from exc
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        log.info("auth.register.succeeded", extra={"user_id": user.id})
        return self._open_session(user)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthSessionOut:
        """
        Authenticate credentials and issue a fresh token pair.

        The previous refresh token of the user (if any) stops being accepted.

        :raises ValidationError: Empty email/password.
        :raises AuthenticationError: ``invalid_credentials`` for unknown email or wrong password.
        :raises InternalError: Store failure.
        """
        email, password = self._require_credentials(dto.email, dto.password)

        try:
            user = self.credentials.find_by_email(email)
        except StoreError as exc:
            log.error("auth.login.store_failed", exc_info=True)
            raise InternalError() from exc

        if user is None:
            # Same amount of hashing work as a real check
            self.credentials.verify_password(password, self.hasher.dummy_hash())
            log.info("auth.login.failed", extra={"reason": INVALID_CREDENTIALS})
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not self.credentials.verify_password(password, user.password_hash):
            log.info(
                "auth.login.failed", extra={"reason": INVALID_CREDENTIALS, "user_id": user.id}
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        session = self._open_session(user)
        log.info("auth.login.succeeded", extra={"user_id": user.id})
        return session

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> RefreshOut:
        """
        Exchange a refresh token for a new access token.

        Order: ledger membership first (revocation), then signature and expiry
        (forgery). Both must pass.

        :raises AuthenticationError: ``missing_token``, ``revoked_or_unknown``
            or ``invalid_or_expired``.
        :raises InternalError: Store failure.
        """
        token = dto.refresh_token
        if not token:
            raise AuthenticationError(MISSING_TOKEN)

        try:
            record = self.ledger.find_active(token)
        except StoreError as exc:
            log.error("auth.refresh.store_failed", exc_info=True)
            raise InternalError() from exc

        if record is None:
            log.info("auth.refresh.rejected", extra={"reason": REVOKED_OR_UNKNOWN})
            raise AuthenticationError(REVOKED_OR_UNKNOWN)

        try:
            claims = self.codec.verify(
                token, self.cfg.refresh_secret, expected_kind=REFRESH_TOKEN_TYPE
            )
        except TokenError as exc:
            log.info(
                "auth.refresh.rejected",
                extra={"reason": INVALID_OR_EXPIRED, "user_id": record.owner_id},
            )
            raise AuthenticationError(INVALID_OR_EXPIRED) from exc

        if claims.subject != record.owner_id:
            log.warning(
                "auth.refresh.owner_mismatch",
                extra={"reason": INVALID_OR_EXPIRED, "user_id": record.owner_id},
            )
            raise AuthenticationError(INVALID_OR_EXPIRED)

        access = self.codec.issue(
            ACCESS_TOKEN_TYPE,
            claims.subject,
            claims.email,
            self.cfg.access_secret,
            self.cfg.access_expires,
        )

        new_refresh: str | None = None
        if self.cfg.rotate_refresh_on_use:
            issued = self.codec.issue_token(
                REFRESH_TOKEN_TYPE,
                claims.subject,
                claims.email,
                self.cfg.refresh_secret,
                self.cfg.refresh_expires,
            )
            try:
                # put revokes the presented token along with any other active one
                self.ledger.put(record.owner_id, issued.value, issued.claims.expires_at)
            except StoreError as exc:
                log.error("auth.refresh.store_failed", exc_info=True)
                raise InternalError() from exc
            new_refresh = issued.value

        log.info(
            "auth.refresh.succeeded",
            extra={"user_id": claims.subject, "rotated": new_refresh is not None},
        )
        return RefreshOut(access_token=access, refresh_token=new_refresh)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the presented refresh token (and optionally every session of its owner).

        Never raises: unknown, already revoked or absent tokens are accepted, and
        store failures are logged only.
        """
        token = dto.refresh_token
        if not token:
            log.info("auth.logout", extra={"count": 0})
            return

        count = 0
        try:
            if dto.all_sessions:
                record = self.ledger.get(token)
                if record is not None:
                    count = self.ledger.revoke_all(record.owner_id)
            self.ledger.revoke(token)
        except StoreError:
            log.error("auth.logout.store_failed", exc_info=True)
            return

        log.info("auth.logout", extra={"count": count})

    # ------------------------------------------------------------------ #
    # Verify
    # ------------------------------------------------------------------ #

    def verify(self, claims: TokenClaims) -> UserPublicOut:
        """
        Public view of an identity already validated by the verification gate.

        Pure: no ledger or credential store access.
        """
        return UserPublicOut(email=claims.email)

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_credentials(email: str | None, password: str | None) -> tuple[str, str]:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")
        return email, password

    def _open_session(self, user: UserIdentity) -> AuthSessionOut:
        """Issue an access/refresh pair and record the refresh token."""
        access = self.codec.issue(
            ACCESS_TOKEN_TYPE,
            user.id,
            user.email,
            self.cfg.access_secret,
            self.cfg.access_expires,
        )
        refresh = self.codec.issue_token(
            REFRESH_TOKEN_TYPE,
            user.id,
            user.email,
            self.cfg.refresh_secret,
            self.cfg.refresh_expires,
        )
        try:
            self.ledger.put(str(user.id), refresh.value, refresh.claims.expires_at)
        except StoreError as exc:
            log.error("auth.session.store_failed", extra={"user_id": user.id}, exc_info=True)
            raise InternalError() from exc

        return AuthSessionOut(
            access_token=access,
            refresh_token=refresh.value,
            user=UserPublicOut(email=user.email),
        )
