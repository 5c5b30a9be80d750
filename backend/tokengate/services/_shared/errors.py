"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are the contract between repositories, models and services.

The translation to HTTP responses (RFC 7807) is handled by
:func:`tokengate.services._shared.base.translate_service_error`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name; SQLite reports ``table.column``,
    so both spellings are tried.

    :param exc: The exception raised by SQLAlchemy during flush/commit.
    :param constraint_name: Constraint name (e.g. ``"uq_users_username"``).
    :returns: ``True`` if the error matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    _, _, column = constraint_name.partition("_users_")
    return bool(column) and f"users.{column}" in message


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them into ``APIError`` subclasses.
    """


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a uniqueness rule is violated.

    :param entity: Entity name (e.g., "User").
    :param detail: Short human-readable explanation.
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


@dataclass(slots=True)
class ValidationError(ServiceError):
    """
    Raised when service input is malformed.

    :param errors: Field name to list of messages.
    """

    errors: dict[str, list[str]] = field(default_factory=dict)

    def __str__(self) -> str:
        return "Validation failed: " + ", ".join(sorted(self.errors))


class AuthenticationError(ServiceError):
    """
    Raised when credentials or a refresh session are not acceptable.

    :param reason: Internal cause (``"unknown_user"``, ``"bad_password"``,
        ``"no_session"``, ``"token_mismatch"``, ``"rotation_race"``...). Logged,
        never sent to clients.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def as_log_extra(self) -> dict[str, Any]:
        return {"reason": self.reason}
