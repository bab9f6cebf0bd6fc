"""
cli.py — Flask CLI commands for running Grabit without the identity provider.

  flask --app grabit.wsgi create-user alice
  flask --app grabit.wsgi issue-token 1 --expires-in 3600

In production users and tokens come from the identity provider. These
commands provision the same rows and sign the same kind of token for local
development and manual testing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import click
import jwt
from flask import Flask, current_app

from grabit.app.errors import AppError
from grabit.app.extensions import db
from grabit.app.services import user_service


def _sign_token(user_id: int, expires_in: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def register_cli(app: Flask) -> None:

    @app.cli.command("create-user")
    @click.argument("username")
    def create_user(username: str) -> None:
        """Provision a user with the given login handle."""
        user = user_service.create_user(username.strip(), db.session)
        db.session.commit()
        current_app.logger.info("Created user %s (%s)", user.id, user.username)
        click.echo(f"Created user {user.id} ({user.username})")

    @app.cli.command("issue-token")
    @click.argument("user_id", type=int)
    @click.option("--expires-in", default=3600, show_default=True,
                  help="Token lifetime in seconds.")
    def issue_token(user_id: int, expires_in: int) -> None:
        """Print a bearer token for an existing user."""
        try:
            user = user_service.get_user_or_404(user_id, db.session)
        except AppError as error:
            raise click.ClickException(error.message) from error
        click.echo(_sign_token(user.id, expires_in))
