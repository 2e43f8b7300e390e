"""RFC 7807 (``application/problem+json``) error responses."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from werkzeug.exceptions import HTTPException

from tokenauth.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Stable ``code`` for plain HTTP errors raised by Flask/Werkzeug or extensions
STATUS_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    415: "unsupported_media_type",
    429: "too_many_requests",
    500: "internal_server_error",
    503: "service_unavailable",
}


class APIError(Exception):
    """
    Error rendered as a problem document.

    Subclasses fix ``status_code`` and a default ``code``; callers may pass a
    more specific ``code`` (e.g. ``"access_expired"``).

    :param message: Client-safe summary, sent as ``detail``.
    :param status_code: HTTP status (defaults to the class value).
    :param code: Machine-readable snake_case identifier.
    :param details: Optional structured, client-safe payload.
    """

    status_code: int = HTTPStatus.BAD_REQUEST
    code: str = "bad_request"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code if status_code is not None else type(self).status_code)
        self.code = code or type(self).code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem_document(self.status_code, self.code, self.message, self.details)


class BadRequest(APIError):
    status_code = HTTPStatus.BAD_REQUEST
    code = "validation_error"

    def __init__(self, message: str = "Bad request", code: str | None = None) -> None:
        super().__init__(message, code=code)


class Unauthorized(APIError):
    status_code = HTTPStatus.UNAUTHORIZED
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized", code: str | None = None) -> None:
        super().__init__(message, code=code)


class Forbidden(APIError):
    status_code = HTTPStatus.FORBIDDEN
    code = "forbidden"

    def __init__(self, message: str = "Forbidden", code: str | None = None) -> None:
        super().__init__(message, code=code)


class Conflict(APIError):
    status_code = HTTPStatus.CONFLICT
    code = "conflict"

    def __init__(self, message: str = "Conflict", code: str | None = None) -> None:
        super().__init__(message, code=code)


def problem_document(
    status: int, code: str, detail: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """
    Build a problem document.

    Carries the RFC 7807 members (``type``, ``title``, ``status``, ``detail``,
    ``instance``) plus the ``code`` and ``request_id`` extensions.
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": detail,
        "instance": request.path if request else None,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        problem["details"] = details
    return problem


def _respond(problem: dict[str, Any], *, exc_info: BaseException | None = None):
    status = problem["status"]
    if status >= 500:
        log.error("problem %s %s", status, problem["code"], exc_info=exc_info)
    else:
        log.warning("problem %s %s: %s", status, problem["code"], problem["detail"])
    response: Response = jsonify(problem)
    response.mimetype = PROBLEM_MIMETYPE
    return response, status


def init_app(app: Flask) -> None:
    """Register problem+json handlers; 5xx are logged with traceback, 4xx as warnings."""

    @app.errorhandler(APIError)
    def _api_error(err: APIError):
        return _respond(err.to_problem())

    @app.errorhandler(MarshmallowValidationError)
    def _validation_error(err: MarshmallowValidationError):
        problem = problem_document(
            HTTPStatus.BAD_REQUEST,
            "validation_error",
            "Validation failed",
            {"errors": err.messages},
        )
        return _respond(problem)

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = STATUS_CODES.get(status, "error")
        if status == HTTPStatus.NOT_FOUND:
            detail = f"Route '{request.path}' not found"
        else:
            detail = (err.description or HTTPStatus(status).phrase).strip()
        return _respond(problem_document(status, code, detail))

    @app.errorhandler(Exception)
    def _unexpected_error(err: Exception):
        problem = problem_document(
            HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error"
        )
        return _respond(problem, exc_info=err)
