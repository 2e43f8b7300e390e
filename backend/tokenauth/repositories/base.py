"""Generic SQLAlchemy 2.x repository.

Repositories are persistence-only: no token policy, and no commit/rollback
(units of work own the transaction).
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy.orm import Session

from tokenauth.core.extensions import db

E = TypeVar("E")  # mapped entity


class BaseRepository(Generic[E]):
    """
    Repository for one mapped class.

    :param session: Session shared by the unit of work; defaults to the
        Flask-scoped ``db.session``.
    """

    #: Mapped class handled by the repository (set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so database defaults and the PK are populated."""
        self.session.add(instance)
        self.session.flush()
        return instance

    def get_for_update(self, entity_id: Any) -> E | None:
        """Load by primary key with ``SELECT ... FOR UPDATE``.

        The row lock is held until the surrounding transaction ends. Backends
        without row locks (SQLite) ignore the clause.
        """
        return self.session.get(self.model, entity_id, with_for_update=True, populate_existing=True)
