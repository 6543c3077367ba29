from __future__ import annotations

from ..errors import NotFound, ValidationError
from ..models import Customer, new_id

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "tax_id"}


def search_customers(repository, query: str | None = None) -> list[Customer]:
    """Case-insensitive name substring search; everything when query is empty."""
    customers = repository.list_customers()
    needle = (query or "").strip().lower()
    if not needle:
        return customers
    return [c for c in customers if needle in c.name.lower()]


def _clean_customer_patch(patch: dict) -> dict:
    cleaned = {}
    for key, value in patch.items():
        if key not in CUSTOMER_MUTABLE_FIELDS:
            continue
        text = str(value).strip() if value is not None else ""
        if key == "name" and not text:
            raise ValidationError("name is required")
        cleaned[key] = text or None
    return cleaned


def create_customer(repository, patch: dict) -> Customer:
    if not str(patch.get("name") or "").strip():
        raise ValidationError("name is required")
    customer = Customer(id=new_id())
    for key, value in _clean_customer_patch(patch).items():
        setattr(customer, key, value)
    return repository.upsert_customer(customer)


def update_customer(repository, customer_id: str, patch: dict) -> Customer:
    customer = repository.get_customer(customer_id)
    if customer is None:
        raise NotFound("Customer not found", details={"customer_id": customer_id})
    for key, value in _clean_customer_patch(patch).items():
        setattr(customer, key, value)
    return repository.upsert_customer(customer)
