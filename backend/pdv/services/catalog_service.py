# backend/pdv/services/catalog_service.py
"""
Catalog Service

Read side: active products for the sales screen, with the category and
name filters the terminal offers. Write side: admin product maintenance
through the repository.
"""
from __future__ import annotations

from ..errors import NotFound, ProductUnavailable, ValidationError
from ..models import Product, new_id
from ..money import parse_non_negative_amount

PRODUCT_MUTABLE_FIELDS = {"name", "category", "description", "price", "is_active"}
ALL_CATEGORIES = "ALL"


def list_active_products(repository) -> list[Product]:
    return repository.list_products(active_only=True)


def filter_products(products, category: str | None = None, search: str | None = None) -> list[Product]:
    """Category match (or ALL) and case-insensitive name substring."""
    needle = (search or "").strip().lower()
    result = []
    for product in products:
        if category and category != ALL_CATEGORIES and product.category != category:
            continue
        if needle and needle not in product.name.lower():
            continue
        result.append(product)
    return result


def list_categories(products) -> list[str]:
    return sorted({p.category for p in products if p.category})


def get_active_product(repository, product_id: str) -> Product:
    product = repository.get_product(product_id)
    if product is None:
        raise NotFound("Product not found", details={"product_id": product_id})
    if not product.is_active:
        raise ProductUnavailable(f"Product {product.name!r} is not available for sale",
                                 details={"product_id": product_id})
    return product


def clean_product_patch(patch: dict) -> dict:
    """Validate and normalize writable fields before anything touches a model."""
    cleaned = {}
    for key, value in patch.items():
        if key not in PRODUCT_MUTABLE_FIELDS:
            continue
        if key == "price":
            cleaned["price_cents"] = parse_non_negative_amount(value)
        elif key == "name":
            name = str(value or "").strip()
            if not name:
                raise ValidationError("name is required")
            cleaned["name"] = name
        elif key == "is_active":
            cleaned["is_active"] = bool(value)
        elif key == "category":
            cleaned["category"] = str(value or "").strip()
        else:
            cleaned[key] = str(value).strip() if value is not None else None
    return cleaned


def apply_product_patch(product: Product, patch: dict) -> None:
    for key, value in clean_product_patch(patch).items():
        setattr(product, key, value)


def create_product(repository, patch: dict) -> Product:
    if not str(patch.get("name") or "").strip():
        raise ValidationError("name is required")
    if patch.get("price") is None:
        raise ValidationError("price is required")

    product = Product(id=new_id(), category="", is_active=True)
    apply_product_patch(product, patch)
    return repository.upsert_product(product)


def update_product(repository, product_id: str, patch: dict) -> Product:
    product = repository.get_product(product_id)
    if product is None:
        raise NotFound("Product not found", details={"product_id": product_id})
    apply_product_patch(product, patch)
    return repository.upsert_product(product)


def delete_product(repository, product_id: str) -> None:
    """Past sales keep their own snapshot, so deletion never rewrites history."""
    if not repository.delete_product(product_id):
        raise NotFound("Product not found", details={"product_id": product_id})
