"""
errors.py — AppError hierarchy and error code registry.

Every error returned by the Grabit API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Taxonomy (one subclass per kind, each with its default HTTP status):
  NotFoundError      404 — referenced challenge / user / join request /
                           commit approval / approval entry does not exist
  UnauthorizedError  401 — missing or bad token, or a leader-only challenge
                           mutation attempted by a non-leader
  ForbiddenError     403 — join-request resolution, commit-approval deletion
                           or entry resolution by the wrong actor
  ConflictError      409 — a uniqueness invariant would be violated
  BadRequestError    400 — malformed or underspecified request

Persistence failures (SQLAlchemyError) are NOT AppErrors. They propagate as
infrastructure errors and are handled separately in the app factory.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class NotFoundError(AppError):

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 404, field)


class UnauthorizedError(AppError):

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 401, field)


class ForbiddenError(AppError):

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 403, field)


class ConflictError(AppError):

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 409, field)


class BadRequestError(AppError):

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 400, field)


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    SEARCH_FILTER_REQUIRED     = "SEARCH_FILTER_REQUIRED"
    LEADER_NOT_MEMBER          = "LEADER_NOT_MEMBER"
    INVALID_APPROVAL_STATUS    = "INVALID_APPROVAL_STATUS"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    JOIN_REQUEST_PENDING       = "JOIN_REQUEST_PENDING"
    APPROVAL_ALREADY_RESOLVED  = "APPROVAL_ALREADY_RESOLVED"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    CHALLENGE_NOT_FOUND        = "CHALLENGE_NOT_FOUND"
    JOIN_REQUEST_NOT_FOUND     = "JOIN_REQUEST_NOT_FOUND"
    COMMIT_APPROVAL_NOT_FOUND  = "COMMIT_APPROVAL_NOT_FOUND"
    APPROVAL_ENTRY_NOT_FOUND   = "APPROVAL_ENTRY_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = unauthenticated, or not the leader of the challenge being changed
    # 403 = known caller acting outside their role in a workflow
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    NOT_CHALLENGE_LEADER       = "NOT_CHALLENGE_LEADER"   # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403
    LEADER_CANNOT_LEAVE        = "LEADER_CANNOT_LEAVE"    # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    DATABASE_ERROR             = "DATABASE_ERROR"
    INTERNAL_ERROR             = "INTERNAL_ERROR"
