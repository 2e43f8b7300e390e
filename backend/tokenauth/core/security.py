"""Password hashing helpers backed by :mod:`werkzeug.security`."""

from __future__ import annotations

from dataclasses import dataclass, field

from werkzeug.security import check_password_hash, generate_password_hash


@dataclass(slots=True)
class PasswordHasher:
    """
    Adaptive, salted password hashing.

    :param method: Werkzeug method string, e.g. ``"scrypt"`` (default) or
        ``"pbkdf2:sha256:600000"``. The cost factor is part of the string and
        is stored inside every hash, so old hashes keep verifying after a change.
    """

    method: str = "scrypt"
    _dummy_hash: str | None = field(default=None, init=False, repr=False)

    def hash(self, raw: str) -> str:
        """Return a salted hash for ``raw``."""
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(raw, method=self.method)

    def verify(self, raw: str, hashed: str) -> bool:
        """Check ``raw`` against ``hashed``; malformed hashes never match."""
        if not raw or not hashed:
            return False
        try:
            return bool(check_password_hash(hashed, raw))
        except ValueError:
            return False

    def dummy_hash(self) -> str:
        """A throwaway hash used to equalize timing for unknown accounts."""
        if self._dummy_hash is None:
            self._dummy_hash = generate_password_hash("dummy-password", method=self.method)
        return self._dummy_hash
