"""JSON-lines logging with per-request correlation ids."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")
MAX_REQUEST_ID_LENGTH = 128

# ``extra=`` keys copied into the JSON line; token values and passwords are never passed as extras
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "reason", "rotated", "count")


class JSONFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``event`` and known extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        entry.update({key: record.__dict__[key] for key in EXTRA_KEYS if key in record.__dict__})
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _incoming_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value:
            return value[:MAX_REQUEST_ID_LENGTH]
    return None


def ensure_request_id() -> str:
    """
    Correlation id of the current request.

    Taken from ``X-Request-ID`` / ``X-Correlation-ID`` when the client sends
    one, generated otherwise, and cached on :data:`flask.g`. Outside a request
    a fresh id is returned each call.
    """
    if not has_request_context():
        return uuid4().hex
    request_id = g.get("request_id")
    if request_id is None:
        request_id = g.request_id = _incoming_request_id() or uuid4().hex
    return request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Replace root handlers with a single JSON stdout handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    logging.basicConfig(
        level=level.upper() if isinstance(level, str) else level,
        handlers=[handler],
        force=True,
    )


def init_app(app: Flask) -> None:
    """Seed the request id early and echo it in the ``X-Request-ID`` response header."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        # g outlives the request when an app context was pushed beforehand
        g.pop("request_id", None)
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["JSONFormatter", "RequestIdFilter", "configure_logging", "ensure_request_id", "init_app"]
