"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
limiter = Limiter(get_remote_address)


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations and the rate limiter.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`tokengate.models` package so SQLAlchemy metadata is ready for
        migrations and ``create_all``.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from tokengate import models as _models  # noqa: F401

    migrate.init_app(app, db)
    limiter.init_app(app)
