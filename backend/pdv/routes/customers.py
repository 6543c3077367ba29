# Overview: Flask API routes for the customer registry.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_capability
from ..errors import PosError
from ..permissions import Capability
from ..services import customer_service
from . import get_repository


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_capability(Capability.CUSTOMERS)
def list_customers_route():
    customers = customer_service.search_customers(get_repository(), request.args.get("q"))
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@customers_bp.post("")
@require_auth
@require_capability(Capability.CUSTOMERS)
def create_customer_route():
    try:
        customer = customer_service.create_customer(get_repository(), request.get_json(silent=True) or {})
        return jsonify({"customer": customer.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<customer_id>")
@require_auth
@require_capability(Capability.CUSTOMERS)
def update_customer_route(customer_id: str):
    try:
        customer = customer_service.update_customer(
            get_repository(), customer_id, request.get_json(silent=True) or {}
        )
        return jsonify({"customer": customer.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500
