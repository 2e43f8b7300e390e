"""Flask CLI commands for refresh token ledger maintenance."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from tokenauth.services._shared.ports import RefreshTokenLedger, StoreError

LOGGER = logging.getLogger(__name__)


def _ledger() -> RefreshTokenLedger:
    return current_app.extensions["refresh_token_ledger"]


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh token ledger maintenance commands."""


@tokens_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete expired and revoked refresh token records."""
    try:
        removed = _ledger().purge_expired()
    except StoreError as exc:
        raise click.ClickException(f"Purge failed: {exc}") from exc
    LOGGER.info("tokens.purge", extra={"count": removed})
    click.echo(f"Purged {removed} refresh token record(s).")


@tokens_cli.command("revoke-user")
@click.argument("user_id")
@with_appcontext
def revoke_user_command(user_id: str) -> None:
    """Revoke every refresh token owned by USER_ID."""
    try:
        revoked = _ledger().revoke_all(user_id)
    except StoreError as exc:
        raise click.ClickException(f"Revocation failed: {exc}") from exc
    LOGGER.info("tokens.revoke_user", extra={"user_id": user_id, "count": revoked})
    click.echo(f"Revoked {revoked} refresh token(s) for user {user_id}.")
