# grabit/app/routes/users.py
from flask import Blueprint, g, jsonify

from grabit.app.extensions import db
from grabit.app.middleware.auth_middleware import require_auth
from grabit.app.routes.common import serialize_user
from grabit.app.services import user_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/me", methods=["GET"])
@require_auth
def me():
    user = user_service.get_user_or_404(g.user_id, db.session)
    result = serialize_user(user)
    result["created_at"] = user.created_at.isoformat()
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/by-username/<string:username>", methods=["GET"])
@require_auth
def get_user_by_username(username: str):
    user = user_service.get_user_by_username(username, db.session)
    return jsonify({"data": serialize_user(user), "warnings": []}), 200
