"""Refresh token ledger repository."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, or_, select, update

from tokenauth.models.refresh_token import RefreshToken
from tokenauth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken` rows.

    Bulk ``UPDATE``/``DELETE`` statements run with ``synchronize_session=False``;
    callers read rows again after they commit.
    """

    model = RefreshToken

    def get_by_token(self, token: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(RefreshToken.token == token)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def list_active_for_owner(self, owner_id: int, now: datetime) -> list[RefreshToken]:
        """Non-revoked, unexpired rows of ``owner_id`` (newest first)."""
        stmt = (
            select(RefreshToken)
            .where(
                RefreshToken.owner_id == owner_id,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .order_by(RefreshToken.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def revoke_active_for_owner(self, owner_id: int) -> int:
        """Flag every non-revoked row of ``owner_id`` as revoked.

        :returns: Rows updated.
        :rtype: int
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.owner_id == owner_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def revoke_by_token(self, token: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token == token, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_stale(self, now: datetime) -> int:
        """Delete revoked or expired rows.

        :param now: Reference time; rows with ``expires_at <= now`` are expired.
        :returns: Rows deleted.
        """
        stmt = (
            delete(RefreshToken)
            .where(or_(RefreshToken.revoked.is_(True), RefreshToken.expires_at <= now))
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)
