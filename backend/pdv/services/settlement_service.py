# Overview: Service-layer settlement; turns a cart plus tenders into a persisted Sale.

"""
Sale Settlement Service

WHY: Settlement is the only place a Sale is created. It validates the
checkout, snapshots the cart, and hands header + lines + payments to the
repository as a single transaction.

ORDER OF CHECKS (first failure wins, nothing is written):
1. session must be OPEN            -> RegisterClosed
2. cart must have lines            -> EmptyCart
3. total within MAX_AMOUNT_CENTS   -> InvalidAmount
4. tendered must cover the total   -> InsufficientPayment

The cart and collector are cleared only after the repository has
acknowledged the insert. A PersistenceFailure leaves them intact so the
operator can retry the same order.
"""

from __future__ import annotations

from flask import current_app

from ..checkout import MAX_QUANTITY, Cart, PaymentCollector
from ..errors import (
    EmptyCart,
    InsufficientPayment,
    InvalidAmount,
    PersistenceFailure,
    RegisterClosed,
    ValidationError,
)
from ..models import Sale, SaleLine, SalePayment, new_id
from ..money import MAX_AMOUNT_CENTS
from ..permissions import Capability, require_capability
from pdv.time_utils import utcnow
from . import catalog_service


def settle(
    repository,
    cart: Cart,
    collector: PaymentCollector,
    operator,
    session,
    customer=None,
) -> Sale:
    """
    Settle the current checkout against an OPEN register session.

    Returns:
        The persisted Sale, permanently owned by `session`.

    Raises:
        RegisterClosed, EmptyCart, InsufficientPayment: rejected, no side effects
        PersistenceFailure: storage failed, cart and tenders kept for retry
    """
    require_capability(operator, Capability.SALES)

    if session is None or not session.is_open:
        raise RegisterClosed("Open the register before selling")

    if cart.is_empty():
        raise EmptyCart("Cart is empty")

    total = cart.total_cents()
    if total > MAX_AMOUNT_CENTS:
        raise InvalidAmount("Sale total is too large",
                            details={"total_cents": total, "max_cents": MAX_AMOUNT_CENTS})

    tendered = collector.total_tendered_cents()
    if tendered < total:
        raise InsufficientPayment(
            "Payments do not cover the sale total",
            details={
                "total_cents": total,
                "tendered_cents": tendered,
                "remaining_cents": total - tendered,
            },
        )

    sale = Sale(
        id=new_id(),
        sold_at=utcnow(),
        operator_id=operator.id,
        customer_id=customer.id if customer is not None else None,
        total_cents=total,
        change_cents=tendered - total,
        lines=[
            SaleLine(
                position=position,
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=line.line_total_cents,
            )
            for position, line in enumerate(cart.snapshot())
        ],
        payments=[
            SalePayment(position=position, method=payment.method, amount_cents=payment.amount_cents)
            for position, payment in enumerate(collector.snapshot())
        ],
    )

    try:
        sale = repository.insert_sale(sale, session.id)
    except PersistenceFailure:
        current_app.logger.warning(
            "Sale for session %s not recorded; cart kept for retry (%d lines, %d cents)",
            session.id, len(cart.lines), total,
        )
        raise

    cart.clear()
    collector.clear()

    current_app.logger.info(
        "Sale %s settled in session %s: total %d cents, change %d cents",
        sale.id, session.id, sale.total_cents, sale.change_cents,
    )
    return sale


def build_checkout(repository, lines: list[dict], payments: list[dict]) -> tuple[Cart, PaymentCollector]:
    """
    Replay a client-side cart and tender list through Cart and PaymentCollector.

    lines:    [{"product_id": "...", "quantity": 2}, ...]
    payments: [{"method": "CASH", "amount": "40.00"}, ...]

    Prices and names always come from the catalog, never from the client.
    """
    cart = Cart()
    for entry in lines or []:
        product_id = entry.get("product_id")
        if not product_id:
            raise ValidationError("Each line requires product_id")
        quantity = entry.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity must be an integer", details={"product_id": product_id})
        if quantity < 1:
            raise ValidationError("quantity must be at least 1", details={"product_id": product_id})
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}",
                                  details={"product_id": product_id, "max_quantity": MAX_QUANTITY})

        product = catalog_service.get_active_product(repository, product_id)
        line = cart.add_line(product)
        cart.set_quantity(product_id, line.quantity - 1 + quantity)

    collector = PaymentCollector(cart)
    for entry in payments or []:
        collector.add_payment(entry.get("method"), entry.get("amount"))

    return cart, collector


def checkout(repository, operator, lines: list[dict], payments: list[dict], customer_id: str | None = None) -> Sale:
    """Build a checkout from a request payload and settle it against the OPEN session."""
    customer = None
    if customer_id:
        customer = repository.get_customer(customer_id)
        if customer is None:
            raise ValidationError("Customer not found", details={"customer_id": customer_id})

    cart, collector = build_checkout(repository, lines, payments)
    session = repository.get_open_session()
    return settle(repository, cart, collector, operator, session, customer=customer)
