from __future__ import annotations

from flask import Blueprint, abort, jsonify

from models.schemas.auth import UserOutSchema
from services import credentials
from utils.decorators import jwt_required

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()


@bp.get("/users/me")
@jwt_required()
def me(identity):
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: The account behind the token no longer exists
    """
    user = credentials.get_user(identity.user_id)
    if user is None:
        abort(404, description="User not found")
    return jsonify({"data": user_out_schema.dump(user)}), 200
