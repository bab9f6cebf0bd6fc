"""
routes/challenges.py — Challenge and membership route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (url_prefix=/api/v1/challenges):
  POST   /challenges                          → 201  create challenge
  GET    /challenges?title=&description=&leader_id=&page=&size=
                                              → 200  search (one filter required)
  GET    /challenges/mine                     → 200  caller's challenges
  GET    /challenges/:id                      → 200  challenge + roster
  PATCH  /challenges/:id                      → 200  update (leader only)
  DELETE /challenges/:id                      → 200  delete (leader only)
  POST   /challenges/:id/join                 → 200  join or request to join
  POST   /challenges/:id/leave                → 200  leave (not the leader)
  GET    /challenges/:id/join-requests        → 200  pending requests (leader only)
  GET    /challenges/:id/commit-approvals     → 200  commit approvals (members only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from grabit.app.extensions import db
from grabit.app.middleware.auth_middleware import require_auth
from grabit.app.routes.common import (
    page_size,
    serialize_challenge,
    serialize_commit_approval,
    serialize_join_request,
    serialize_page,
)
from grabit.app.schemas.challenge_schema import (
    CreateChallengeSchema,
    PageQuerySchema,
    SearchChallengeSchema,
    UpdateChallengeSchema,
)
from grabit.app.services import challenge_service, commit_approval_service

challenges_bp = Blueprint("challenges", __name__)


@challenges_bp.route("/", methods=["POST"])
@require_auth
def create_challenge():
    """POST /challenges — Create a challenge. Caller becomes leader and first member."""
    data = CreateChallengeSchema().load(request.get_json(force=True) or {})
    challenge = challenge_service.create_challenge(
        name=data["name"],
        description=data["description"],
        is_private=data["is_private"],
        creator_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": serialize_challenge(challenge), "warnings": []}), 201


@challenges_bp.route("/", methods=["GET"])
@require_auth
def search_challenges():
    """GET /challenges — Paged search by title, description and/or leader."""
    data = SearchChallengeSchema().load(request.args.to_dict())
    page = challenge_service.search_challenges(
        title=data["title"],
        description=data["description"],
        leader_id=data["leader_id"],
        page=data["page"],
        size=page_size(data["size"]),
        session=db.session,
    )
    return jsonify({
        "data": serialize_page(
            page, lambda c: serialize_challenge(c, include_members=False),
        ),
        "warnings": [],
    }), 200


@challenges_bp.route("/mine", methods=["GET"])
@require_auth
def list_my_challenges():
    """GET /challenges/mine — Challenges the caller belongs to."""
    challenges = challenge_service.list_my_challenges(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({
        "data": [serialize_challenge(c, include_members=False) for c in challenges],
        "warnings": [],
    }), 200


@challenges_bp.route("/<int:challenge_id>", methods=["GET"])
@require_auth
def get_challenge(challenge_id: int):
    """GET /challenges/:id — Challenge details with roster."""
    challenge = challenge_service.get_challenge(
        challenge_id=challenge_id,
        session=db.session,
    )
    return jsonify({"data": serialize_challenge(challenge), "warnings": []}), 200


@challenges_bp.route("/<int:challenge_id>", methods=["PATCH"])
@require_auth
def update_challenge(challenge_id: int):
    """PATCH /challenges/:id — Update name/description and (re)assign the leader."""
    data = UpdateChallengeSchema().load(request.get_json(force=True) or {})
    challenge = challenge_service.update_challenge(
        challenge_id=challenge_id,
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": serialize_challenge(challenge), "warnings": []}), 200


@challenges_bp.route("/<int:challenge_id>", methods=["DELETE"])
@require_auth
def delete_challenge(challenge_id: int):
    """DELETE /challenges/:id — Delete the challenge and everything it owns."""
    challenge_service.delete_challenge(
        challenge_id=challenge_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "challenge_id": challenge_id,
        },
        "warnings": [],
    }), 200


@challenges_bp.route("/<int:challenge_id>/join", methods=["POST"])
@require_auth
def request_join(challenge_id: int):
    """
    POST /challenges/:id/join — Public: join now. Private: leave a join request.
    `joined` tells the client which of the two happened.
    """
    challenge = challenge_service.request_join(
        challenge_id=challenge_id,
        user_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "challenge": serialize_challenge(challenge),
            "joined": not challenge.is_private,
        },
        "warnings": [],
    }), 200


@challenges_bp.route("/<int:challenge_id>/leave", methods=["POST"])
@require_auth
def leave_challenge(challenge_id: int):
    """POST /challenges/:id/leave — Leave the challenge. The leader cannot leave."""
    challenge_service.leave_challenge(
        challenge_id=challenge_id,
        user_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "left": True,
            "challenge_id": challenge_id,
            "user_id": g.user_id,
        },
        "warnings": [],
    }), 200


@challenges_bp.route("/<int:challenge_id>/join-requests", methods=["GET"])
@require_auth
def list_join_requests(challenge_id: int):
    """GET /challenges/:id/join-requests — Pending join requests. Leader only."""
    data = PageQuerySchema().load(request.args.to_dict())
    page = challenge_service.list_join_requests(
        challenge_id=challenge_id,
        caller_id=g.user_id,
        page=data["page"],
        size=page_size(data["size"]),
        session=db.session,
    )
    return jsonify({
        "data": serialize_page(page, serialize_join_request),
        "warnings": [],
    }), 200


@challenges_bp.route("/<int:challenge_id>/commit-approvals", methods=["GET"])
@require_auth
def list_commit_approvals(challenge_id: int):
    """GET /challenges/:id/commit-approvals — Commits with their entries. Members only."""
    data = PageQuerySchema().load(request.args.to_dict())
    page = commit_approval_service.list_commit_approvals(
        challenge_id=challenge_id,
        caller_id=g.user_id,
        page=data["page"],
        size=page_size(data["size"]),
        session=db.session,
    )
    return jsonify({
        "data": serialize_page(page, serialize_commit_approval),
        "warnings": [],
    }), 200
