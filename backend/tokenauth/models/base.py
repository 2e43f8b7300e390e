"""Column mixins shared by the ``users`` and ``refresh_tokens`` tables."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column


class PKMixin:
    """Integer surrogate key ``id``."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class CreatedAtMixin:
    """Insert timestamp set by the database (aware UTC where supported)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class TimestampMixin(CreatedAtMixin):
    """``created_at`` plus an ``updated_at`` bumped on every ORM update."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class ReprMixin:
    """
    ``<Model id=.. field=..>`` representation.

    Only the attributes listed in ``__repr_fields__`` are shown; token values
    and password hashes must never be listed there.
    """

    __repr_fields__: tuple[str, ...] = ()

    def __repr__(self) -> str:
        shown = [f"id={getattr(self, 'id', None)}"]
        shown.extend(f"{name}={getattr(self, name, None)!r}" for name in self.__repr_fields__)
        return f"<{type(self).__name__} {' '.join(shown)}>"
