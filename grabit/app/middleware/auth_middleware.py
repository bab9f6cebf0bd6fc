"""
middleware/auth_middleware.py — Bearer-token authentication for Grabit routes.

Grabit never issues tokens in production; the identity provider does. A
request is authenticated when its `Authorization: Bearer <jwt>` header
carries a token signed with JWT_SECRET_KEY whose `sub` claim is a user id.
That id is stored on flask.g.user_id and routes hand it to services as a
plain int. Leader, author and member checks happen in the services.

Failures raise UnauthorizedError (401):
  TOKEN_MISSING  — no Authorization header
  TOKEN_INVALID  — not "Bearer <token>", bad signature, or unusable `sub`
  TOKEN_EXPIRED  — signature fine, `exp` in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from grabit.app.errors import ErrorCode, UnauthorizedError


def require_auth(f: Callable) -> Callable:
    """
    Route decorator: authenticates the request, then calls the view with
    g.user_id set.

        @challenges_bp.route("/mine")
        @require_auth
        def list_my_challenges():
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise UnauthorizedError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
        )

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token.strip():
        raise UnauthorizedError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
        )
    return token.strip()


def _decode(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Sign in again to obtain a new one.",
        )
    except jwt.InvalidTokenError:
        raise UnauthorizedError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
        )


def _user_id_from_claims(claims: dict) -> int:
    sub = claims.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise UnauthorizedError(
            ErrorCode.TOKEN_INVALID,
            "The access token's 'sub' claim must be a user id.",
        )


def _authenticate_request() -> None:
    """Verifies the bearer token and sets flask.g.user_id. Callable directly in tests."""
    g.user_id = _user_id_from_claims(_decode(_bearer_token()))
