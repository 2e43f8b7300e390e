"""Transaction boundaries for the SQL adapters."""

from tokenauth.uow.base import UnitOfWork
from tokenauth.uow.sqlalchemy_uow import (
    ReadOnlyViolation,
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

__all__ = [
    "ReadOnlyViolation",
    "SQLAlchemyReadOnlyUnitOfWork",
    "SQLAlchemyUnitOfWork",
    "UnitOfWork",
]
