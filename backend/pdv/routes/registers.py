# Overview: Flask API routes for register sessions; parses input and returns JSON responses.

# backend/pdv/routes/registers.py
"""
Register Session API Routes

WHY: Operators open the register with a counted float, sell against it,
and close it to get the reconciliation.

DESIGN:
- One OPEN session at a time (409 AlreadyOpen otherwise)
- Closing is final; a closed session is history only
- Amounts in requests are currency units ("100.00"); responses are cents

SECURITY:
- REGISTER capability for every endpoint
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_capability
from ..errors import PosError
from ..permissions import Capability
from ..services import register_service
from . import get_repository


registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


@registers_bp.get("/current")
@require_auth
@require_capability(Capability.REGISTER)
def current_session_route():
    try:
        session = register_service.get_open_session(get_repository())
        if session is None:
            return jsonify({"session": None, "is_open": False}), 200
        return jsonify({"session": session.to_dict(include_sales=True), "is_open": True}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load current register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/open")
@require_auth
@require_capability(Capability.REGISTER)
def open_session_route():
    """
    Open a register session.

    Request body:
    {
        "opening_balance": "100.00"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        session = register_service.open_session(
            get_repository(),
            data.get("opening_balance"),
            g.current_user,
        )
        return jsonify({"session": session.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to open register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/close")
@require_auth
@require_capability(Capability.REGISTER)
def close_session_route():
    """
    Close the OPEN session.

    Request body (all optional):
    {
        "observations": "Troco conferido",
        "counted_balance": "134.00"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        repository = get_repository()
        session = register_service.close_session(
            repository,
            register_service.get_open_session(repository),
            observations=data.get("observations"),
            counted_balance=data.get("counted_balance"),
            operator=g.current_user,
        )
        return jsonify(register_service.session_summary(session)), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to close register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/current/position")
@require_auth
@require_capability(Capability.REGISTER)
def current_position_route():
    """Live per-method totals of the OPEN session."""
    try:
        session = register_service.get_open_session(get_repository())
        if session is None:
            return jsonify({"error": "No open register session", "code": "RegisterClosed"}), 409
        return jsonify(register_service.session_summary(session)), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to compute cash position")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/history")
@require_auth
@require_capability(Capability.REGISTER)
def history_route():
    """All sessions, newest first. ?include_sales=true embeds each session's sales."""
    try:
        include_sales = request.args.get("include_sales", "false").lower() == "true"
        sessions = get_repository().list_session_history()
        return jsonify({
            "items": [s.to_dict(include_sales=include_sales) for s in sessions],
            "count": len(sessions),
        }), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load register history")
        return jsonify({"error": "Internal server error"}), 500
