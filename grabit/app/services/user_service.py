"""
services/user_service.py — User lookups.

Users are provisioned outside the workflow core; these helpers only resolve
them. Used by the challenge workflow (leader reassignment) and the users
routes.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from grabit.app.errors import ErrorCode, NotFoundError
from grabit.app.models.user import User


def get_user_or_404(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
        )
    return user


def get_user_by_username(username: str, session: Session) -> User:
    """Returns the User with this login handle or raises USER_NOT_FOUND (404)."""
    user = session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()

    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User '{username}' not found.",
        )
    return user


def create_user(username: str, session: Session) -> User:
    """
    Provisions a user row. Called by the `create-user` CLI command, standing in
    for the identity provider's first-login hook.
    """
    user = User(username=username)
    session.add(user)
    session.flush()
    return user
