# comments in English; reST docstrings
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from tokenauth.services._shared.ports.refresh_token_ledger import (
    LedgerRecord,
    RefreshTokenLedger,
    StoreError,
    as_utc,
    utcnow,
)


def _b(value: Any, default: str = "") -> str:
    """Decode a Redis reply that may be bytes (``decode_responses=False``) or str."""
    if value is None:
        return default
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


def _field(h: dict[Any, Any], name: str, default: str = "") -> str:
    return _b(h.get(name.encode(), h.get(name)), default)


@dataclass(slots=True)
class RedisRefreshTokenLedger(RefreshTokenLedger):
    """
    Redis-backed ledger.

    Layout:
      - ``rt:{sha256(token)}``: hash with ``owner_id``, ``token``, ``revoked``, ``expires_at``;
        Redis TTL matches the token expiry.
      - ``rt:u:{owner_id}``: set of token digests owned by the user.

    ``put`` WATCHes the owner's index, so two concurrent puts for the same user
    cannot both commit; the loser retries and revokes the winner's record.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _digest(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @staticmethod
    def _k(digest: str) -> str:
        return f"rt:{digest}"

    @staticmethod
    def _ku(owner_id: str) -> str:
        return f"rt:u:{owner_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(as_utc(dt).timestamp())

    @staticmethod
    def _to_record(h: dict[Any, Any]) -> LedgerRecord:
        return LedgerRecord(
            owner_id=_field(h, "owner_id"),
            token=_field(h, "token"),
            revoked=_field(h, "revoked", "0") == "1",
            expires_at=datetime.fromtimestamp(int(_field(h, "expires_at", "0")), tz=UTC),
        )

    def _members(self, client: Any, owner_id: str) -> list[str]:
        return sorted(_b(m) for m in client.smembers(self._ku(owner_id)))

    # -------------------- API ------------------------

    def put(self, owner_id: str, token: str, expires_at: datetime) -> None:
        owner_id = str(owner_id)
        digest = self._digest(token)
        k_user = self._ku(owner_id)
        exp_ts = self._to_ts(expires_at)
        ttl = max(1, exp_ts - self._to_ts(utcnow()))

        try:
            # Retry loop for optimistic locking in case of concurrent puts
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_user)
                        members = self._members(p, owner_id)
                        # Records may expire before EXEC; HSET must not recreate them
                        if members:
                            p.watch(*(self._k(m) for m in members))
                        live = [m for m in members if p.exists(self._k(m))]
                        stale = [m for m in members if m not in live]

                        p.multi()
                        for m in live:
                            p.hset(self._k(m), "revoked", "1")
                        if stale:
                            p.srem(k_user, *stale)
                        p.hset(
                            self._k(digest),
                            mapping={
                                "owner_id": owner_id,
                                "token": token,
                                "revoked": "0",
                                "expires_at": str(exp_ts),
                            },
                        )
                        p.expire(self._k(digest), ttl)
                        p.sadd(k_user, digest)
                        p.execute()
                    return
                except redis.WatchError:
                    continue
        except RedisError as exc:
            raise StoreError("redis put failed") from exc

    def get(self, token: str) -> LedgerRecord | None:
        try:
            h = self.r.hgetall(self._k(self._digest(token)))
        except RedisError as exc:
            raise StoreError("redis lookup failed") from exc
        if not h:
            return None
        return self._to_record(h)

    def find_active(self, token: str) -> LedgerRecord | None:
        record = self.get(token)
        if record is None or not record.is_active(utcnow()):
            return None
        return record

    def revoke(self, token: str) -> None:
        key = self._k(self._digest(token))
        try:
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        if not p.exists(key):
                            return
                        p.multi()
                        p.hset(key, "revoked", "1")
                        p.execute()
                    return
                except redis.WatchError:
                    continue
        except RedisError as exc:
            raise StoreError("redis revoke failed") from exc

    def revoke_all(self, owner_id: str) -> int:
        k_user = self._ku(str(owner_id))
        try:
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_user)
                        keys = [self._k(m) for m in self._members(p, str(owner_id))]
                        if keys:
                            p.watch(*keys)
                        to_revoke = [k for k in keys if _b(p.hget(k, "revoked")) == "0"]
                        if not to_revoke:
                            return 0
                        p.multi()
                        for k in to_revoke:
                            p.hset(k, "revoked", "1")
                        p.execute()
                    return len(to_revoke)
                except redis.WatchError:
                    continue
        except RedisError as exc:
            raise StoreError("redis revoke_all failed") from exc

    def list_active(self, owner_id: str) -> list[LedgerRecord]:
        now = utcnow()
        out: list[LedgerRecord] = []
        try:
            for m in self._members(self.r, str(owner_id)):
                h = self.r.hgetall(self._k(m))
                if h:
                    record = self._to_record(h)
                    if record.is_active(now):
                        out.append(record)
        except RedisError as exc:
            raise StoreError("redis listing failed") from exc
        return out

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop revoked/expired hashes and dangling index members."""
        reference = as_utc(now) if now else utcnow()
        removed = 0
        try:
            for k_user in self.r.scan_iter(match="rt:u:*"):
                k_user = _b(k_user)
                owner_id = k_user[len("rt:u:") :]
                for m in self._members(self.r, owner_id):
                    h = self.r.hgetall(self._k(m))
                    if h and self._to_record(h).is_active(reference):
                        continue
                    with self.r.pipeline(transaction=True) as p:
                        p.delete(self._k(m))
                        p.srem(k_user, m)
                        p.execute()
                    if h:
                        removed += 1
        except RedisError as exc:
            raise StoreError("redis purge failed") from exc
        return removed
