"""
routes/join_requests.py — Join-request resolution.

Endpoints (url_prefix=/api/v1/join-requests):
  POST /join-requests/:id/approve  → 200  requester becomes a member (leader only)
  POST /join-requests/:id/reject   → 200  request discarded (leader only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from grabit.app.extensions import db
from grabit.app.middleware.auth_middleware import require_auth
from grabit.app.routes.common import serialize_challenge
from grabit.app.services import challenge_service

join_requests_bp = Blueprint("join_requests", __name__)


@join_requests_bp.route("/<int:join_request_id>/approve", methods=["POST"])
@require_auth
def approve_join_request(join_request_id: int):
    """POST /join-requests/:id/approve — Approve a pending request."""
    challenge = challenge_service.approve_join_request(
        join_request_id=join_request_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": serialize_challenge(challenge), "warnings": []}), 200


@join_requests_bp.route("/<int:join_request_id>/reject", methods=["POST"])
@require_auth
def reject_join_request(join_request_id: int):
    """POST /join-requests/:id/reject — Reject a pending request."""
    challenge_service.reject_join_request(
        join_request_id=join_request_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "rejected": True,
            "join_request_id": join_request_id,
        },
        "warnings": [],
    }), 200
