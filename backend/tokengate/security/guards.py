"""
Request guards.

A :class:`TokenGuard` runs one verification algorithm; what varies between
token classes is only where the token is read from and how the decoded
payload is attached to the request. Both are plain functions handed to the
guard at construction.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from flask import Request, current_app, g, request

from tokengate.core.errors import Unauthorized
from tokengate.security import get_token_codec
from tokengate.security.tokens import InvalidTokenError, SecretClass

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

Extractor = Callable[[Request], "str | None"]
Mutator = Callable[[dict[str, Any], str], None]


# --------------------------------------------------------------------------- #
# Extractors
# --------------------------------------------------------------------------- #


def bearer_token(req: Request) -> str | None:
    """Return the credential of an ``Authorization: Bearer <token>`` header."""
    header = req.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def refresh_cookie(req: Request) -> str | None:
    """Return the refresh token cookie, named by ``REFRESH_COOKIE_NAME``."""
    name = current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token")
    return req.cookies.get(name) or None


# --------------------------------------------------------------------------- #
# Mutators
# --------------------------------------------------------------------------- #


def attach_identity(payload: dict[str, Any], token: str) -> None:
    g.current_user = payload


def attach_refresh_identity(payload: dict[str, Any], token: str) -> None:
    # Raw token kept so the service can match it against the stored hash
    g.current_user = {**payload, "refresh_token": token}


# --------------------------------------------------------------------------- #
# Guard
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenGuard:
    """
    Authenticate a request with a token of ``secret_class``.

    :param name: Label used in logs.
    :param secret_class: Which secret the token must verify against.
    :param extract: Reads the candidate token from the request.
    :param attach: Stores the decoded payload on the request context.
    """

    name: str
    secret_class: SecretClass
    extract: Extractor
    attach: Mutator

    def authenticate(self, req: Request | None = None) -> dict[str, Any]:
        """
        Extract, verify and attach.

        :returns: Decoded payload.
        :raises Unauthorized: On any failure; the response never says which.
        """
        req = req if req is not None else request
        token = self.extract(req)
        if not token:
            self._reject("missing")
        try:
            payload = get_token_codec().verify(token, self.secret_class)
        except InvalidTokenError as exc:
            self._reject(exc.reason)
        self.attach(payload, token)
        return payload

    def _reject(self, reason: str) -> None:
        log.info("auth.guard.rejected", extra={"guard": self.name, "reason": reason})
        raise Unauthorized()

    def __call__(self, func: F) -> F:
        """Use the guard as a view decorator."""

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            self.authenticate()
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]


access_guard = TokenGuard(
    name="access",
    secret_class=SecretClass.ACCESS,
    extract=bearer_token,
    attach=attach_identity,
)

refresh_guard = TokenGuard(
    name="refresh",
    secret_class=SecretClass.REFRESH,
    extract=refresh_cookie,
    attach=attach_refresh_identity,
)


def current_identity() -> dict[str, Any]:
    """Return the payload attached by the guard protecting the current view."""
    identity = g.get("current_user")
    if identity is None:
        raise Unauthorized()
    return identity
