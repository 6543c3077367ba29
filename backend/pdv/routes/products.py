# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_capability, require_any_capability
from ..errors import PosError
from ..permissions import Capability, has_capability
from ..services import catalog_service
from . import get_repository


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_any_capability(Capability.REGISTER, Capability.SALES, Capability.CATALOG)
def list_products_route():
    """
    List products.

    Sales screens see active products only; catalog managers may pass
    include_inactive=true. Optional filters: category, q (name search).
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    repository = get_repository()

    if include_inactive and has_capability(g.current_user, Capability.CATALOG):
        products = repository.list_products()
    else:
        products = catalog_service.list_active_products(repository)

    filtered = catalog_service.filter_products(
        products,
        category=request.args.get("category"),
        search=request.args.get("q"),
    )
    return jsonify({
        "items": [p.to_dict() for p in filtered],
        "count": len(filtered),
        "categories": catalog_service.list_categories(products),
    }), 200


@products_bp.post("")
@require_auth
@require_capability(Capability.CATALOG)
def create_product_route():
    """
    Create product.

    Request body:
    {
        "name": "Drip Coffee",
        "category": "Praticos",
        "price": "4.50",
        "description": "...",
        "is_active": true
    }
    """
    try:
        product = catalog_service.create_product(get_repository(), request.get_json(silent=True) or {})
        return jsonify({"product": product.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<product_id>")
@require_auth
@require_capability(Capability.CATALOG)
def update_product_route(product_id: str):
    try:
        product = catalog_service.update_product(get_repository(), product_id, request.get_json(silent=True) or {})
        return jsonify({"product": product.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
@require_auth
@require_capability(Capability.CATALOG)
def delete_product_route(product_id: str):
    try:
        catalog_service.delete_product(get_repository(), product_id)
        return jsonify({"deleted": product_id}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
