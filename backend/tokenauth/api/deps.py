"""Request-side plumbing shared by the v1 blueprints."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from tokenauth.services._shared.base import BaseService
from tokenauth.services._shared.errors import ServiceError
from tokenauth.services.auth import AuthService, VerificationGate

F = TypeVar("F", bound=Callable[..., Any])


def get_auth_service() -> AuthService:
    return cast(AuthService, current_app.extensions["auth_service"])


def get_verification_gate() -> VerificationGate:
    return cast(VerificationGate, current_app.extensions["verification_gate"])


def translate_service_errors(func: F) -> F:
    """Wrap a view so that :class:`ServiceError` leaves it as the matching :class:`APIError`."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise BaseService.translate_exceptions(exc) from exc

    return wrapper  # type: ignore[return-value]


def require_access_token(func: F) -> F:
    """
    Guard a view with the verification gate.

    The view runs only for a valid access token; its claims land in
    ``g.identity``. The ledger is never consulted.
    """

    @functools.wraps(func)
    @translate_service_errors
    def wrapper(*args: Any, **kwargs: Any):
        g.identity = get_verification_gate().authenticate(request.headers.get("Authorization"))
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Log ``request.elapsed`` (milliseconds) at debug level after each call."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            current_app.logger.debug(
                "request.elapsed",
                extra={
                    "endpoint": request.endpoint,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )

    return wrapper  # type: ignore[return-value]
