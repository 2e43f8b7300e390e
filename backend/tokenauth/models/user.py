"""Account row read and written by the SQL credential store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tokenauth.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .refresh_token import RefreshToken


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    A registered account.

    ``email`` is kept lowercased and trimmed so the unique constraint is
    case-insensitive in practice. ``password_hash`` holds the salted hash
    from :class:`~tokenauth.core.security.PasswordHasher`; the plain text is
    never stored.
    """

    __tablename__ = "users"
    __repr_fields__ = ("email",)
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)

    refresh_tokens: Mapped[list[RefreshToken]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    @validates("email")
    def _clean_email(self, _key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("email must be a non-empty string")
        local, at, domain = value.strip().lower().rpartition("@")
        if not at or not local or "." not in domain:
            raise ValueError(f"not an email address: {value!r}")
        return f"{local}@{domain}"
