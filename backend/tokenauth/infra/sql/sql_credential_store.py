# tokenauth/infra/sql/sql_credential_store.py
from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tokenauth.core.security import PasswordHasher
from tokenauth.models.user import User
from tokenauth.services._shared.ports.credential_store import (
    CredentialStore,
    IdentityExistsError,
    UserIdentity,
)
from tokenauth.services._shared.ports.refresh_token_ledger import StoreError
from tokenauth.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork


def _to_identity(user: User) -> UserIdentity:
    return UserIdentity(id=user.id, email=user.email, password_hash=user.password_hash)


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """Check whether an IntegrityError names ``constraint_name`` (PostgreSQL style)."""
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


class SQLCredentialStore(CredentialStore):
    """Credential store over the ``users`` table."""

    def __init__(
        self,
        hasher: PasswordHasher,
        *,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        ro_uow_factory: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self.hasher = hasher
        self._uow = uow_factory
        self._ro_uow = ro_uow_factory

    def find_by_email(self, email: str) -> UserIdentity | None:
        try:
            with self._ro_uow() as uow:
                user = uow.users.get_by_email(email)
                return _to_identity(user) if user is not None else None
        except SQLAlchemyError as exc:
            raise StoreError("user lookup failed") from exc

    def verify_password(self, plain: str, password_hash: str) -> bool:
        return self.hasher.verify(plain, password_hash)

    def create(self, email: str, password_hash: str) -> UserIdentity:
        """
        Insert a user row.

        :raises IdentityExistsError: When the unique email constraint fires.
        :raises ValueError: When the model rejects the email format.
        :raises StoreError: On any other database failure.
        """
        try:
            with self._uow() as uow:
                user = uow.users.create(email, password_hash)
                identity = _to_identity(user)
        except IntegrityError as exc:
            # SQLite reports "UNIQUE constraint failed: users.email" without the name
            if violates(exc, "uq_users_email") or "users.email" in str(exc.orig).lower():
                raise IdentityExistsError(email) from exc
            raise StoreError("user insert failed") from exc
        except SQLAlchemyError as exc:
            raise StoreError("user insert failed") from exc
        return identity
