"""HTTP API: versioned blueprints mounted under ``API_BASE_PREFIX``."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def join_prefix(*segments: str) -> str:
    """Join URL segments into ``/a/b/c``, ignoring empty parts and stray slashes.

    >>> join_prefix("/api/", "v1", "")
    '/api/v1'
    """
    parts = [segment.strip("/") for segment in segments]
    return "/" + "/".join(part for part in parts if part)


def register_blueprint_group(
    app: Flask, *, base_prefix: str, entries: Iterable[tuple[Blueprint, str]]
) -> None:
    """Mount each ``(blueprint, relative_prefix)`` pair below ``base_prefix``."""
    for blueprint, relative in entries:
        app.register_blueprint(blueprint, url_prefix=join_prefix(base_prefix, relative))


def init_app(app: Flask) -> None:
    from tokenauth.api import v1

    base = join_prefix(app.config.get("API_BASE_PREFIX", "/api"), v1.API_VERSION)
    register_blueprint_group(app, base_prefix=base, entries=v1.REGISTRY)


__all__ = ["init_app", "join_prefix", "register_blueprint_group"]
