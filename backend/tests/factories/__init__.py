"""Factory Boy base bound to whichever session the ``factories`` fixture hands in."""

from __future__ import annotations

import factory

_bound = {"session": None}


def bind_session(session) -> None:
    _bound["session"] = session


def _current_session():
    session = _bound["session"]
    if session is None:
        raise RuntimeError("No session bound; request the 'factories' fixture first.")
    return session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    # Committed: the code under test reads through its own units of work.
    class Meta:
        abstract = True
        sqlalchemy_session_factory = _current_session
        sqlalchemy_session_persistence = "commit"
