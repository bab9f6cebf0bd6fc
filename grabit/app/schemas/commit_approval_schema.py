"""
schemas/commit_approval_schema.py — Marshmallow schemas for commit approvals.

Cross-entity rules (challenge existence, authorship, entry ownership,
resolve-once) live in services/commit_approval_service.py.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from grabit.app.models.commit_approval import ApprovalStatus
from grabit.app.schemas.challenge_schema import _validate_non_empty_after_trim


class CreateCommitApprovalSchema(Schema):
    """POST /commit-approvals"""

    challenge_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="challenge_id must be a positive integer."),
    )

    # ISO date, e.g. "2024-01-01".
    target_date = fields.Date(required=True)

    content = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=5000),
            _validate_non_empty_after_trim,
        ],
    )


class ResolveEntrySchema(Schema):
    """POST /commit-approval-entries/:id — pending is not a valid target."""

    status = fields.Str(
        required=True,
        validate=validate.OneOf(
            [ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value],
            error="status must be 'approved' or 'rejected'.",
        ),
    )
