from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Protocol

from tokenauth.core.security import PasswordHasher


class IdentityExistsError(Exception):
    """An identity with the same (normalized) email already exists."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """
    Credential Store view of a user.

    :ivar id: Unique identifier.
    :ivar email: Normalized (trimmed, lowercase) email.
    :ivar password_hash: One-way salted hash. Never leaves the service layer.
    """

    id: int
    email: str
    password_hash: str


class CredentialStore(Protocol):
    """Lookup, verification and creation of user identities."""

    def find_by_email(self, email: str) -> UserIdentity | None: ...

    def verify_password(self, plain: str, password_hash: str) -> bool: ...

    def create(self, email: str, password_hash: str) -> UserIdentity:
        """Persist a new identity. :raises IdentityExistsError: On duplicate email."""
        ...


class InMemoryCredentialStore(CredentialStore):
    """Dictionary-backed store used by unit tests."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self.hasher = hasher or PasswordHasher()
        self._users: dict[str, UserIdentity] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> UserIdentity | None:
        return self._users.get(normalize_email(email))

    def verify_password(self, plain: str, password_hash: str) -> bool:
        return self.hasher.verify(plain, password_hash)

    def create(self, email: str, password_hash: str) -> UserIdentity:
        key = normalize_email(email)
        with self._lock:
            if key in self._users:
                raise IdentityExistsError(key)
            identity = UserIdentity(id=next(self._ids), email=key, password_hash=password_hash)
            self._users[key] = identity
        return identity

    def __len__(self) -> int:
        return len(self._users)
