"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tokenauth.api.deps import json_response, timing
from tokenauth.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report database reachability and the configured ledger backend; always 200."""
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        database = "fail"
    return json_response(
        {
            "status": "ok",
            "db": database,
            "ledger": current_app.config.get("LEDGER_BACKEND", "sql"),
            "version": current_app.config.get("APP_VERSION", "dev"),
        }
    )
