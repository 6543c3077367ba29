# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pdv/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login   username + secret -> bearer token
- POST /api/auth/logout  revoke the presented token
- GET  /api/auth/me      current user and capabilities
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import PosError
from ..permissions import capabilities_for
from ..services import auth_service, token_service
from . import get_repository


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create a bearer token.

    Request body:
    {
        "username": "caixa1",
        "password": "1234"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password") or data.get("pin")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(get_repository(), username, password)

        if not user:
            current_app.logger.info("Failed login for %r from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        record, token = token_service.create_token(user)

        return jsonify({
            "user": user.to_dict(),
            "capabilities": sorted(c.value for c in capabilities_for(user)),
            "token": token,
            "expires_at": record.to_dict()["expires_at"],
            "message": "Login successful"
        }), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token_service.revoke_token(g.auth_token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "capabilities": sorted(c.value for c in capabilities_for(user)),
    }), 200
