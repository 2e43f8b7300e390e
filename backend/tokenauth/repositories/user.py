"""Queries over ``users``."""

from __future__ import annotations

from sqlalchemy import select

from tokenauth.models.user import User
from tokenauth.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    # Storage only: hashing and verification live in PasswordHasher / the credential store.
    model = User

    def get_by_email(self, email: str) -> User | None:
        """Look up by email; the argument is normalized the same way the model stores it."""
        return self.session.scalars(
            select(User).where(User.email == email.strip().lower()).limit(1)
        ).first()

    def create(self, email: str, password_hash: str) -> User:
        """Insert and flush a new user; a malformed email raises ValueError."""
        return self.add(User(email=email, password_hash=password_hash))
