from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol


class StoreError(Exception):
    """A backing store (database, Redis) failed or is unreachable."""


@dataclass(frozen=True, slots=True)
class LedgerRecord:
    """
    Read-model for a refresh token record.

    :ivar owner_id: Owning user identifier (string form).
    :ivar token: The signed refresh token string.
    :ivar revoked: Whether the record has been revoked.
    :ivar expires_at: Absolute expiration (aware UTC).
    """

    owner_id: str
    token: str
    revoked: bool
    expires_at: datetime

    def is_active(self, now: datetime) -> bool:
        """Active means not revoked and strictly before expiry."""
        return not self.revoked and self.expires_at > now


class RefreshTokenLedger(Protocol):
    """
    Durable registry of issued refresh tokens; the source of truth for revocation.

    ``put`` MUST be serialized per owner so that at most one active record per
    owner survives concurrent calls. ``revoke`` and ``revoke_all`` are idempotent.
    Implementations raise :class:`StoreError` on backend failures.
    """

    def put(self, owner_id: str, token: str, expires_at: datetime) -> None:
        """Revoke the owner's active records and insert ``token`` as the only active one."""

    def find_active(self, token: str) -> LedgerRecord | None:
        """Return the record only if present, not revoked and not expired."""

    def get(self, token: str) -> LedgerRecord | None:
        """Return the record in any state."""

    def revoke(self, token: str) -> None:
        """Mark a single record revoked; no-op when absent or already revoked."""

    def revoke_all(self, owner_id: str) -> int:
        """Revoke every record of ``owner_id``. :returns: Records newly revoked."""

    def list_active(self, owner_id: str) -> list[LedgerRecord]:
        """Active records for ``owner_id`` (at most one under normal operation)."""

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired or revoked records. :returns: Records removed."""


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(dt: datetime) -> datetime:
    """Label naive datetimes as UTC (SQLite drops tzinfo on round-trip)."""
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


class InMemoryRefreshTokenLedger(RefreshTokenLedger):
    """
    Process-local ledger.

    .. note::
       A single lock makes ``put`` (revoke-then-insert) atomic across threads.
       Suitable for tests and single-process development only.
    """

    def __init__(self) -> None:
        self._by_token: dict[str, LedgerRecord] = {}
        self._by_owner: dict[str, set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def put(self, owner_id: str, token: str, expires_at: datetime) -> None:
        owner_id = str(owner_id)
        with self._lock:
            for existing in self._by_owner[owner_id]:
                record = self._by_token[existing]
                if not record.revoked:
                    self._by_token[existing] = replace(record, revoked=True)
            self._by_token[token] = LedgerRecord(
                owner_id=owner_id,
                token=token,
                revoked=False,
                expires_at=as_utc(expires_at),
            )
            self._by_owner[owner_id].add(token)

    def find_active(self, token: str) -> LedgerRecord | None:
        record = self.get(token)
        if record is None or not record.is_active(utcnow()):
            return None
        return record

    def get(self, token: str) -> LedgerRecord | None:
        with self._lock:
            return self._by_token.get(token)

    def revoke(self, token: str) -> None:
        with self._lock:
            record = self._by_token.get(token)
            if record is not None and not record.revoked:
                self._by_token[token] = replace(record, revoked=True)

    def revoke_all(self, owner_id: str) -> int:
        owner_id = str(owner_id)
        count = 0
        with self._lock:
            for token in self._by_owner.get(owner_id, set()):
                record = self._by_token[token]
                if not record.revoked:
                    self._by_token[token] = replace(record, revoked=True)
                    count += 1
        return count

    def list_active(self, owner_id: str) -> list[LedgerRecord]:
        now = utcnow()
        with self._lock:
            records = [self._by_token[t] for t in self._by_owner.get(str(owner_id), set())]
        return [r for r in records if r.is_active(now)]

    def purge_expired(self, now: datetime | None = None) -> int:
        now = as_utc(now) if now else utcnow()
        with self._lock:
            stale = [t for t, r in self._by_token.items() if not r.is_active(now)]
            for token in stale:
                record = self._by_token.pop(token)
                self._by_owner[record.owner_id].discard(token)
        return len(stale)
