# tokenauth/infra/sql/sql_refresh_token_ledger.py
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from tokenauth.models.refresh_token import RefreshToken
from tokenauth.services._shared.ports.refresh_token_ledger import (
    LedgerRecord,
    RefreshTokenLedger,
    StoreError,
    as_utc,
    utcnow,
)
from tokenauth.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork


def _owner_pk(owner_id: str | int) -> int:
    try:
        return int(owner_id)
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Invalid owner id: {owner_id!r}") from exc


def _to_record(row: RefreshToken) -> LedgerRecord:
    return LedgerRecord(
        owner_id=str(row.owner_id),
        token=row.token,
        revoked=bool(row.revoked),
        expires_at=as_utc(row.expires_at),
    )


class SQLRefreshTokenLedger(RefreshTokenLedger):
    """
    Ledger stored in the ``refresh_tokens`` table.

    ``put`` runs lock-owner, revoke-active and insert inside one read-write unit
    of work. The owner row is selected ``FOR UPDATE`` so concurrent logins for
    the same user queue behind each other on databases that support row locks.

    .. note::
       Requires an active Flask app context (Flask-SQLAlchemy scoped session).
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        ro_uow_factory: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self._uow = uow_factory
        self._ro_uow = ro_uow_factory

    # ---- writes ------------------------------------------------------------ #

    def put(self, owner_id: str, token: str, expires_at: datetime) -> None:
        pk = _owner_pk(owner_id)
        try:
            with self._uow() as uow:
                if uow.users.get_for_update(pk) is None:
                    raise StoreError(f"Unknown owner: {pk}")
                uow.refresh_tokens.revoke_active_for_owner(pk)
                uow.refresh_tokens.add(
                    RefreshToken(
                        owner_id=pk,
                        token=token,
                        revoked=False,
                        expires_at=as_utc(expires_at),
                    )
                )
        except SQLAlchemyError as exc:
            raise StoreError("refresh token insert failed") from exc

    def revoke(self, token: str) -> None:
        try:
            with self._uow() as uow:
                uow.refresh_tokens.revoke_by_token(token)
        except SQLAlchemyError as exc:
            raise StoreError("refresh token revoke failed") from exc

    def revoke_all(self, owner_id: str) -> int:
        pk = _owner_pk(owner_id)
        try:
            with self._uow() as uow:
                return uow.refresh_tokens.revoke_active_for_owner(pk)
        except SQLAlchemyError as exc:
            raise StoreError("refresh token revoke_all failed") from exc

    def purge_expired(self, now: datetime | None = None) -> int:
        reference = as_utc(now) if now else utcnow()
        try:
            with self._uow() as uow:
                return uow.refresh_tokens.delete_stale(reference)
        except SQLAlchemyError as exc:
            raise StoreError("refresh token purge failed") from exc

    # ---- reads ------------------------------------------------------------- #

    def get(self, token: str) -> LedgerRecord | None:
        try:
            with self._ro_uow() as uow:
                row = uow.refresh_tokens.get_by_token(token)
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreError("refresh token lookup failed") from exc

    def find_active(self, token: str) -> LedgerRecord | None:
        record = self.get(token)
        if record is None or not record.is_active(utcnow()):
            return None
        return record

    def list_active(self, owner_id: str) -> list[LedgerRecord]:
        pk = _owner_pk(owner_id)
        try:
            with self._ro_uow() as uow:
                rows = uow.refresh_tokens.list_active_for_owner(pk, utcnow())
                return [_to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError("refresh token listing failed") from exc
