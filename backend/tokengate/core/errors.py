"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, has_request_context, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from tokengate.core.logger import ensure_request_id

log = logging.getLogger(__name__)

# Single client-facing message for every authentication failure
UNAUTHORIZED_DETAIL = "Authentication required or credentials are invalid"


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if has_request_context() else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any], status: int) -> tuple[Response, int]:
    """Return a Flask response with the ``application/problem+json`` media type."""
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    return resp, status


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Structured payload (e.g., validation messages) included in the body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        """Serialize error metadata into an RFC 7807 problem."""
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class Conflict(APIError):
    """409 for uniqueness collisions."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class Unauthorized(APIError):
    """401 when authentication fails.

    The message is fixed on purpose: callers must not be able to tell a
    missing token from an expired, forged or revoked one.
    """

    def __init__(self) -> None:
        super().__init__(
            UNAUTHORIZED_DETAIL, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized"
        )


class UnprocessableEntity(APIError):
    """422 for input that fails validation, carrying per-field messages."""

    def __init__(
        self, message: str = "Validation failed", errors: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message,
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            details={"errors": errors} if errors else None,
        )


class NotFound(APIError):
    """404 when resources are missing."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


# Store failures: (status, code, client message). Driver text never leaks.
_STORE_ERRORS: dict[type[Exception], tuple[HTTPStatus, str, str]] = {
    IntegrityError: (HTTPStatus.CONFLICT, "conflict", "Resource conflict"),
    OperationalError: (
        HTTPStatus.SERVICE_UNAVAILABLE,
        "service_unavailable",
        "Service temporarily unavailable",
    ),
}


def _log_problem(kind: str, problem: dict[str, Any], *, exc_info: bool = False) -> None:
    status = problem["status"]
    level = logging.ERROR if status >= 500 or exc_info else logging.WARNING
    log.log(
        level,
        "%s: code=%s status=%s detail=%s request_id=%s",
        kind,
        problem["code"],
        status,
        problem["detail"],
        problem.get("request_id"),
        exc_info=exc_info,
    )


def init_app(app: Flask) -> None:
    """
    Attach problem+json error handlers to the Flask app.

    Notes
    -----
    - 4xx are logged as warnings, 5xx and store failures as errors with
      ``exc_info``.
    - Store errors are answered without retrying; the client decides.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        _log_problem("APIError", problem)
        return _problem_response(problem, err.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = _http_status_to_code(status)
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        problem = _as_problem(status=status, code=code, message=message)
        _log_problem("HTTPException", problem)
        return _problem_response(problem, status)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        _log_problem("ValidationError", problem)
        return _problem_response(problem, HTTPStatus.UNPROCESSABLE_ENTITY)

    def handle_store_error(err: Exception):
        status, code, message = next(
            entry for exc_type, entry in _STORE_ERRORS.items() if isinstance(err, exc_type)
        )
        problem = _as_problem(status=status, code=code, message=message)
        _log_problem(type(err).__name__, problem, exc_info=True)
        return _problem_response(problem, status)

    for exc_type in _STORE_ERRORS:
        app.register_error_handler(exc_type, handle_store_error)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        _log_problem("Unhandled exception", problem, exc_info=True)
        return _problem_response(problem, HTTPStatus.INTERNAL_SERVER_ERROR)
