"""Dual-token (access/refresh) authentication service."""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
