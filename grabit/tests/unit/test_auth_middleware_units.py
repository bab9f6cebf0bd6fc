"""
Unit tests for middleware/auth_middleware.py.

A bare Flask app supplies the config and request context; no database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from flask import Flask, g

from grabit.app.errors import AppError, ErrorCode
from grabit.app.middleware.auth_middleware import _authenticate_request

_SECRET = "unit-test-secret-key-with-enough-length"


@pytest.fixture
def app():
    flask_app = Flask(__name__)
    flask_app.config.update(JWT_SECRET_KEY=_SECRET, JWT_ALGORITHM="HS256")
    return flask_app


def _token(claims: dict, secret: str = _SECRET) -> str:
    now = datetime.now(timezone.utc)
    payload = {"iat": now, "exp": now + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def _authenticate(app, header: str | None):
    headers = {"Authorization": header} if header is not None else {}
    with app.test_request_context("/", headers=headers):
        _authenticate_request()
        return g.user_id


def test_valid_token_sets_user_id(app):
    assert _authenticate(app, f"Bearer {_token({'sub': '42'})}") == 42


def test_missing_header_raises_token_missing(app):
    with pytest.raises(AppError) as exc_info:
        _authenticate(app, None)

    assert exc_info.value.code == ErrorCode.TOKEN_MISSING
    assert exc_info.value.http_status == 401


@pytest.mark.parametrize("header", ["Bearer", "Token abc", "Bearer a b"])
def test_malformed_header_raises_token_invalid(app, header):
    with pytest.raises(AppError) as exc_info:
        _authenticate(app, header)

    assert exc_info.value.code == ErrorCode.TOKEN_INVALID


def test_expired_token_raises_token_expired(app):
    token = _token({"sub": "1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)})

    with pytest.raises(AppError) as exc_info:
        _authenticate(app, f"Bearer {token}")

    assert exc_info.value.code == ErrorCode.TOKEN_EXPIRED


@pytest.mark.parametrize("claims", [{}, {"sub": "alice"}])
def test_unusable_sub_raises_token_invalid(app, claims):
    with pytest.raises(AppError) as exc_info:
        _authenticate(app, f"Bearer {_token(claims)}")

    assert exc_info.value.code == ErrorCode.TOKEN_INVALID
