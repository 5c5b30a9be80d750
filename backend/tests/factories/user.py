"""Factory Boy definition for :class:`tokengate.models.user.User`."""

from __future__ import annotations

import factory
from tests.factories import BaseFactory
from tokengate.core.config import TestingConfig
from tokengate.models.user import User
from tokengate.security.hasher import CredentialHasher

DEFAULT_PASSWORD = "Passw0rd!"

_hasher = CredentialHasher(method=TestingConfig.PASSWORD_HASH_METHOD)


class UserFactory(BaseFactory):
    """
    Build persisted :class:`tokengate.models.user.User` instances.

    Pass ``password=...`` to choose the plaintext; only its hash is stored.
    Users start without a refresh session.
    """

    class Meta:
        model = User

    class Params:
        password = DEFAULT_PASSWORD

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password_hash = factory.LazyAttribute(lambda o: _hasher.hash(o.password))
    refresh_token_hash = None
