"""Refresh token ledger table."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tokenauth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin

if TYPE_CHECKING:
    from .user import User


class RefreshToken(PKMixin, CreatedAtMixin, ReprMixin, db.Model):
    """
    One issued refresh token and its revocation state.

    Fields
    ------
    owner_id : int
        Owning user (FK ``users.id``, cascades on delete).
    token : str
        Signed refresh token string. Unique.
    revoked : bool
        Set on logout, rotation or a newer login.
    expires_at : datetime
        Copy of the token's ``exp`` claim.
    """

    __tablename__ = "refresh_tokens"
    __repr_fields__ = ("owner_id", "revoked", "expires_at")

    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(Text, nullable=False)
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    owner: Mapped[User] = relationship(back_populates="refresh_tokens")

    __table_args__ = (
        UniqueConstraint("token", name="uq_refresh_tokens_token"),
        Index("ix_refresh_tokens_owner_id_revoked", "owner_id", "revoked"),
    )
