"""
routes/commit_approvals.py — Commit approval route handlers.

Registered at url_prefix=/api/v1 because this blueprint owns both
/commit-approvals and /commit-approval-entries.

Endpoints:
  POST   /commit-approvals              → 201  submit a commit (fans out entries)
  GET    /commit-approvals/:id          → 200  commit + entries
  DELETE /commit-approvals/:id          → 200  delete (author only)
  POST   /commit-approval-entries/:id   → 200  approve / reject one entry
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from grabit.app.extensions import db
from grabit.app.middleware.auth_middleware import require_auth
from grabit.app.routes.common import serialize_commit_approval, serialize_entry
from grabit.app.schemas.commit_approval_schema import (
    CreateCommitApprovalSchema,
    ResolveEntrySchema,
)
from grabit.app.services import commit_approval_service

commit_approvals_bp = Blueprint("commit_approvals", __name__)


@commit_approvals_bp.route("/commit-approvals", methods=["POST"])
@require_auth
def create_commit_approval():
    """POST /commit-approvals — One pending entry is created per current member."""
    data = CreateCommitApprovalSchema().load(request.get_json(force=True) or {})
    commit_approval = commit_approval_service.create_commit_approval(
        challenge_id=data["challenge_id"],
        target_date=data["target_date"],
        content=data["content"],
        author_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": serialize_commit_approval(commit_approval),
        "warnings": [],
    }), 201


@commit_approvals_bp.route("/commit-approvals/<int:commit_approval_id>", methods=["GET"])
@require_auth
def get_commit_approval(commit_approval_id: int):
    """GET /commit-approvals/:id"""
    commit_approval = commit_approval_service.get_commit_approval(
        commit_approval_id=commit_approval_id,
        session=db.session,
    )
    return jsonify({
        "data": serialize_commit_approval(commit_approval),
        "warnings": [],
    }), 200


@commit_approvals_bp.route("/commit-approvals/<int:commit_approval_id>", methods=["DELETE"])
@require_auth
def delete_commit_approval(commit_approval_id: int):
    """DELETE /commit-approvals/:id — Removes the commit and all of its entries."""
    commit_approval_service.delete_commit_approval(
        commit_approval_id=commit_approval_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "commit_approval_id": commit_approval_id,
        },
        "warnings": [],
    }), 200


@commit_approvals_bp.route("/commit-approval-entries/<int:entry_id>", methods=["POST"])
@require_auth
def resolve_entry(entry_id: int):
    """POST /commit-approval-entries/:id — {"status": "approved" | "rejected"}"""
    data = ResolveEntrySchema().load(request.get_json(force=True) or {})
    entry = commit_approval_service.resolve_entry(
        entry_id=entry_id,
        caller_id=g.user_id,
        status=data["status"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": serialize_entry(entry), "warnings": []}), 200
