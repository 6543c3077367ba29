# Overview: Flask API routes for user administration (ADMIN only).

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_capability
from ..errors import PosError
from ..permissions import Capability
from ..services import auth_service
from . import get_repository


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_capability(Capability.USERS)
def list_users_route():
    users = get_repository().list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_capability(Capability.USERS)
def create_user_route():
    """
    Create user.

    Request body:
    {
        "username": "caixa2",
        "name": "Maria",
        "password": "4321",
        "role": "OPERATOR"
    }
    """
    try:
        user = auth_service.create_user(get_repository(), request.get_json(silent=True) or {})
        current_app.logger.info("User %s created by %s", user.id, g.current_user.id)
        return jsonify({"user": user.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<user_id>")
@require_auth
@require_capability(Capability.USERS)
def update_user_route(user_id: str):
    try:
        user = auth_service.update_user(get_repository(), user_id, request.get_json(silent=True) or {})
        return jsonify({"user": user.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<user_id>")
@require_auth
@require_capability(Capability.USERS)
def delete_user_route(user_id: str):
    try:
        auth_service.delete_user(get_repository(), user_id, acting_user=g.current_user)
        return jsonify({"deleted": user_id}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
