# Overview: Flask API routes for checkout; parses input and returns JSON responses.

# backend/pdv/routes/sales.py
"""
Sales API Routes

POST /api/sales/checkout replays the client's cart and tenders through
Cart and PaymentCollector, then settles against the OPEN register session.
Prices always come from the catalog.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_capability
from ..errors import PosError, ValidationError
from ..permissions import Capability
from ..services import settlement_service
from . import get_repository


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/checkout")
@require_auth
@require_capability(Capability.SALES)
def checkout_route():
    """
    Settle a sale.

    Request body:
    {
        "lines": [{"product_id": "...", "quantity": 2}],
        "payments": [{"method": "CASH", "amount": "40.00"}],
        "customer_id": "..."   (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        lines = data.get("lines") or []
        payments = data.get("payments") or []
        if not isinstance(lines, list) or not isinstance(payments, list):
            raise ValidationError("lines and payments must be lists")

        sale = settlement_service.checkout(
            get_repository(),
            g.current_user,
            lines,
            payments,
            customer_id=data.get("customer_id"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to settle sale")
        return jsonify({"error": "Internal server error"}), 500
