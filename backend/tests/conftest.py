"""Pytest fixtures building an isolated application per test.

Each test gets its own application bound to a fresh in-memory SQLite
database. Flask-SQLAlchemy pins in-memory engines to a single connection,
so every session of one app sees the same data and nothing leaks between
tests.
"""

from __future__ import annotations

import os

import pytest
from tokengate import create_app
from tokengate.core.config import TestingConfig
from tokengate.core.extensions import db as _db


@pytest.fixture()
def config():
    """Configuration class handed to the factory; override to tweak settings."""
    return TestingConfig


@pytest.fixture()
def app(config):
    """Create an application with its schema in place.

    No application context stays pushed: HTTP tests get a fresh context per
    request, exactly like a real server.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(config)
    with app.app_context():
        _db.create_all()
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app):
    """Push an application context for service, repository and unit tests.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        yield _db
        _db.session.remove()


@pytest.fixture()
def session(db):
    """Scoped session of the pushed application context."""
    return db.session


@pytest.fixture()
def client(app):
    """Test client without a cookie jar; tests send cookies explicitly."""
    return app.test_client(use_cookies=False)


@pytest.fixture()
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk
