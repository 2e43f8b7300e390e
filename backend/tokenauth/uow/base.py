"""Transaction boundary contract used by the SQL adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokenauth.repositories import RefreshTokenRepository, UserRepository


class UnitOfWork(ABC):
    """
    One transaction spanning the ``users`` and ``refresh_tokens`` repositories.

    Both repositories share a session, so a ledger ``put`` (lock owner, revoke,
    insert) either lands completely or not at all.
    """

    users: UserRepository
    refresh_tokens: RefreshTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
