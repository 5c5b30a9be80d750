"""Shared API helpers for responses, cookies and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request, url_for

from tokengate.security import get_hasher, get_token_codec
from tokengate.services._shared.base import translate_service_error
from tokengate.services._shared.errors import ServiceError
from tokengate.services.auth import AuthService

F = TypeVar("F", bound=Callable[..., Any])

REFRESH_ENDPOINT = "auth.refresh"


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def auth_service() -> AuthService:
    """Build an :class:`AuthService` wired to the application's codec and hasher."""

    return AuthService(codec=get_token_codec(), hasher=get_hasher())


def set_refresh_cookie(response: Response, token: str, expires_at: datetime) -> None:
    """Attach the refresh token cookie, scoped to the refresh endpoint only."""

    response.set_cookie(
        current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token"),
        token,
        expires=expires_at,
        path=url_for(REFRESH_ENDPOINT),
        secure=True,
        httponly=True,
        samesite="Strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    """Expire the refresh token cookie on the client."""

    response.delete_cookie(
        current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token"),
        path=url_for(REFRESH_ENDPOINT),
        secure=True,
        httponly=True,
        samesite="Strict",
    )


def translate_errors(func: F) -> F:
    """Re-raise service errors as their API (HTTP) counterparts."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise translate_service_error(exc) from exc

    return wrapper  # type: ignore[return-value]


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
