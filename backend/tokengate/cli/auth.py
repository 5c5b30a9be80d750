"""Flask CLI commands for operator-side session management."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from tokengate.api.deps import auth_service


@click.group("auth")
def auth_cli() -> None:
    """Refresh session management commands."""


@auth_cli.command("revoke")
@click.argument("username")
@with_appcontext
def revoke_command(username: str) -> None:
    """Revoke the refresh session of USERNAME.

    The user must log in again once the current access token expires.
    """
    if not auth_service().revoke_sessions(username):
        raise click.ClickException(f"No user named {username!r}.")
    click.echo(f"Revoked refresh session for {username}.")
