"""Shared service plumbing: units of work and error translation."""

from __future__ import annotations

from tokengate.core import errors as api_errors
from tokengate.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from tokengate.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Keep services orchestration-only, with no web or ORM leakage.

    Notes
    -----
    Services never touch the global session directly; always use a Unit of Work.
    """

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork()


def translate_service_error(exc: ServiceError) -> api_errors.APIError:
    """
    Map a service-level error to its API-level (HTTP) error.

    :param exc: Exception raised within a service.
    :returns: Translated exception ready to be raised from a view.
    """
    if isinstance(exc, AuthenticationError):
        # → 401, same body whatever the internal reason
        return api_errors.Unauthorized()

    if isinstance(exc, ValidationError):
        # → 422 with field details
        return api_errors.UnprocessableEntity(errors=exc.errors)

    if isinstance(exc, ConflictError):
        # → 409
        return api_errors.Conflict(str(exc))

    if isinstance(exc, NotFoundError):
        # → 404
        return api_errors.NotFound(str(exc))

    # Any other ServiceError subclass → 400 Bad Request
    return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")
