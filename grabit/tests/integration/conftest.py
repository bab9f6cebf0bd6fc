"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the TEST_DATABASE_URL database; an in-memory SQLite
    database when it is unset.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Users and tokens come from the identity provider in production, so there is
no register/login endpoint. The helpers below insert users directly and sign
tokens with the testing JWT secret.

Helper functions (not fixtures) are provided for common operations:
  - make_user(app, ...)            → user id
  - make_token(app, user_id, ...)  → signed bearer token
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - make_challenge(client, ...)    → challenge dict
  - join(client, ...)              → HTTP response
  - make_commit(client, ...)       → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import text

from grabit.app import create_app
from grabit.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.
    Tables are created up front and dropped at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test, children first.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM commit_approval_entries"))
            conn.execute(text("DELETE FROM commit_approvals"))
            conn.execute(text("DELETE FROM join_requests"))
            conn.execute(text("DELETE FROM memberships"))
            conn.execute(text("DELETE FROM challenges"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_user(app, username: str = "alice") -> int:
    """Inserts a user row and returns its id."""
    from grabit.app.services import user_service

    with app.app_context():
        user = user_service.create_user(username, _db.session)
        _db.session.commit()
        return user.id


def make_token(app, user_id: int, expires_in: int = 3600, secret: str | None = None) -> str:
    """Signs an access token for user_id. A negative expires_in yields an expired token."""
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"sub": str(user_id), "iat": now, "exp": now + timedelta(seconds=expires_in)},
        secret or app.config["JWT_SECRET_KEY"],
        algorithm=app.config["JWT_ALGORITHM"],
    )


def make_actor(app, username: str) -> tuple[int, str]:
    """Creates a user and returns (user_id, token)."""
    user_id = make_user(app, username)
    return user_id, make_token(app, user_id)


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_challenge(
    client,
    token: str,
    name: str = "Daily Pushups",
    description: str = "",
    is_private: bool = False,
) -> dict:
    """
    Creates a challenge and returns the challenge data dict.
    The caller (token owner) becomes the leader and first member.
    """
    resp = client.post(
        "/api/v1/challenges/",
        json={"name": name, "description": description, "is_private": is_private},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_challenge failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, challenge_id: int):
    """Joins (public) or requests to join (private). Returns the HTTP response."""
    return client.post(
        f"/api/v1/challenges/{challenge_id}/join",
        headers=auth_headers(token),
    )


def make_commit(
    client,
    token: str,
    challenge_id: int,
    target_date: str = "2024-01-01",
    content: str = "Done for today",
):
    """Submits a commit for approval. Returns the HTTP response."""
    return client.post(
        "/api/v1/commit-approvals",
        json={
            "challenge_id": challenge_id,
            "target_date": target_date,
            "content": content,
        },
        headers=auth_headers(token),
    )
