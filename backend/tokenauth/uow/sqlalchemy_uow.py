"""
Units of work over the Flask-scoped SQLAlchemy session.

Both flavours bind :class:`UserRepository` and :class:`RefreshTokenRepository`
to ``db.session``. The read-write one commits when its block exits cleanly.
The read-only one refuses ORM flushes and always rolls back, so no snapshot
outlives the block.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session

from tokenauth.core.extensions import db
from tokenauth.repositories import RefreshTokenRepository, UserRepository
from tokenauth.uow.base import UnitOfWork


class ReadOnlyViolation(RuntimeError):
    """A write was attempted inside a read-only unit of work."""


class _SessionBound(UnitOfWork):
    def __init__(self, session: Session | None = None) -> None:
        self.session: Session = session if session is not None else db.session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyUnitOfWork(_SessionBound):
    """Read-write transaction: commit on clean exit, roll back when the block raises."""

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except BaseException:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()


class SQLAlchemyReadOnlyUnitOfWork(_SessionBound):
    """
    Read-only transaction.

    Callers copy what they need out of ORM rows inside the block; the closing
    rollback expires every loaded instance. The flush guard is attached to the
    concrete session behind ``db.session`` for this app context only, so
    writers in other contexts or threads are unaffected.

    :raises ReadOnlyViolation: On ``commit()`` or when pending ORM changes would flush.
    """

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        # A scoped_session target would register the guard on the Session class
        self._guarded = self.session() if isinstance(self.session, scoped_session) else self.session
        self._guard = _flush_guard()
        event.listen(self._guarded, "before_flush", self._guard)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.rollback()
        finally:
            if event.contains(self._guarded, "before_flush", self._guard):
                event.remove(self._guarded, "before_flush", self._guard)

    def commit(self) -> None:
        raise ReadOnlyViolation("Read-only unit of work cannot commit.")


def _flush_guard():
    def refuse_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise ReadOnlyViolation("Read-only unit of work: pending ORM changes would be flushed.")

    return refuse_flush
