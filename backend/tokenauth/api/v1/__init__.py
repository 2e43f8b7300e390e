"""Version 1 of the HTTP API: the health check and the auth routes."""

from __future__ import annotations

from flask import Blueprint

from tokenauth.api.v1.auth import bp as auth_bp
from tokenauth.api.v1.health import bp as health_bp

API_VERSION = "v1"

#: ``(blueprint, path below /api/v1)`` pairs mounted by :func:`tokenauth.api.init_app`
REGISTRY: tuple[tuple[Blueprint, str], ...] = (
    (health_bp, ""),
    (auth_bp, "auth"),
)
