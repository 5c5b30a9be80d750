"""Generic repository base for SQLAlchemy 2.x.

Repositories stay persistence-only: no business rules, and never
commit/rollback. Services own the transaction through a Unit of Work.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Shared lookup and write helpers bound to one session.

    :param session: Session shared with the owning Unit of Work.
    :type session: :class:`sqlalchemy.orm.Session`
    """

    model: type[E]

    def __init__(self, *, session: Session) -> None:
        self.session = session

    def get(self, entity_id: Any) -> E | None:
        """Return the entity with primary key ``entity_id`` or ``None``."""
        return self.session.get(self.model, entity_id)

    def add(self, entity: E) -> E:
        """Stage ``entity`` and flush so generated values are populated."""
        self.session.add(entity)
        self.flush()
        return entity

    def flush(self) -> None:
        self.session.flush()
