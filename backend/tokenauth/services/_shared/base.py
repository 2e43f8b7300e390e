# tokenauth/services/_shared/base.py
from __future__ import annotations

from tokenauth.core import errors as api_errors
from tokenauth.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InternalError,
    ServiceError,
    ValidationError,
)


class BaseService:
    """
    Base class for application services.

    Services speak in :class:`ServiceError` subclasses only; the HTTP layer
    calls :meth:`translate_exceptions` at its boundary.
    """

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map a service error to the API error the HTTP layer should raise.

        ========================  ======  =========================
        Service error             Status  Problem ``code``
        ========================  ======  =========================
        ``ValidationError``       400     ``validation_error``
        ``AuthenticationError``   401     the error's ``reason``
        ``AuthorizationError``    403     ``forbidden``
        ``ConflictError``         409     ``already_registered``
        ``InternalError``         500     ``internal_error``
        other ``ServiceError``    400     ``bad_request``
        ========================  ======  =========================

        Anything that is not a :class:`ServiceError` is returned unchanged.

        :param exc: Exception raised by a service.
        :returns: Exception ready to be re-raised.
        """
        if isinstance(exc, AuthenticationError):
            return api_errors.Unauthorized(str(exc), code=exc.reason)
        if isinstance(exc, AuthorizationError):
            return api_errors.Forbidden(str(exc))
        if isinstance(exc, ValidationError):
            return api_errors.BadRequest(str(exc))
        if isinstance(exc, ConflictError):
            return api_errors.Conflict("Email already registered", code="already_registered")
        if isinstance(exc, InternalError):
            # detail of the cause stays in the server log
            return api_errors.APIError("Internal error", status_code=500, code="internal_error")
        if isinstance(exc, ServiceError):
            return api_errors.APIError(str(exc))
        return exc
