# Overview: Request authentication and capability decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .permissions import Capability, has_capability
from .services import token_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the token's (active) User.

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        user = token_service.validate_token(token)

        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.auth_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: Capability):
    """Require the authenticated user's role to grant `capability`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not has_capability(g.current_user, capability):
                current_app.logger.info(
                    "Capability %s denied to user %s on %s %s",
                    capability.value, g.current_user.id, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_capability": capability.value,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_capability(*capabilities: Capability):
    """Require at least one of the given capabilities."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not any(has_capability(g.current_user, c) for c in capabilities):
                return jsonify({
                    "error": "Permission denied",
                    "required_capabilities": [c.value for c in capabilities],
                    "message": f"Requires any of: {', '.join(c.value for c in capabilities)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
