"""Factory Boy helpers wired to the application's SQLAlchemy session."""

from __future__ import annotations

import factory
from tokengate.core.extensions import db


def _current_session():
    """Return the scoped session of the pushed application context."""
    return db.session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Base class persisting factory objects through ``db.session``.

    Objects are committed: HTTP requests in the same test run on their own
    sessions and must see them.
    """

    class Meta:
        abstract = True
        sqlalchemy_session_factory = _current_session
        sqlalchemy_session_persistence = "commit"
