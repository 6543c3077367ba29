# Overview: In-memory cart and tender collection for one checkout attempt.

"""
Checkout state

Cart and PaymentCollector are plain in-memory objects owned by the caller
(a terminal, or a request replaying a client-side cart). Nothing here
touches the database; settlement_service turns them into a Sale.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass

from .errors import InvalidAmount, PaymentNotFound, ProductUnavailable, ValidationError
from .models.enums import PaymentMethod
from .money import parse_positive_amount

# Largest quantity a single cart line may hold
MAX_QUANTITY = 9999


@dataclass
class CartLine:
    """Product reference plus the name/price snapshot taken when it was added."""
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int = 1

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class Cart:
    """Holds current sale lines, one per product id, in insertion order."""

    def __init__(self):
        self.lines: list[CartLine] = []

    def _find(self, product_id: str) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def add_line(self, product) -> CartLine:
        """
        Add one unit of a product.

        An existing line for the same product id is incremented; otherwise a
        new line snapshots the product's current name and price.
        """
        if not getattr(product, "is_active", True):
            raise ProductUnavailable(f"Product {product.name!r} is not available for sale",
                                     details={"product_id": product.id})

        # merge if same product
        line = self._find(product.id)
        if line is not None:
            return self.set_quantity(product.id, line.quantity + 1)

        line = CartLine(
            product_id=product.id,
            name=product.name,
            unit_price_cents=product.price_cents,
        )
        self.lines.append(line)
        return line

    def set_quantity(self, product_id: str, quantity: int) -> CartLine | None:
        """
        Quantities below 1 remove the line. Unknown product ids are ignored.

        Raises ValidationError above MAX_QUANTITY, leaving the line unchanged.
        """
        line = self._find(product_id)
        if line is None:
            return None
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}",
                                  details={"product_id": product_id, "max_quantity": MAX_QUANTITY})
        if quantity < 1:
            self.remove_line(product_id)
            return None
        line.quantity = quantity
        return line

    def increment(self, product_id: str) -> CartLine | None:
        line = self._find(product_id)
        if line is None:
            return None
        return self.set_quantity(product_id, line.quantity + 1)

    def decrement(self, product_id: str) -> CartLine | None:
        line = self._find(product_id)
        if line is None:
            return None
        return self.set_quantity(product_id, line.quantity - 1)

    def remove_line(self, product_id: str) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def clear(self) -> None:
        self.lines = []

    def is_empty(self) -> bool:
        return not self.lines

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def snapshot(self) -> list[CartLine]:
        """Deep copy of the lines; later cart edits do not leak into it."""
        return copy.deepcopy(self.lines)


@dataclass(frozen=True)
class TenderedPayment:
    method: PaymentMethod
    amount_cents: int


class PaymentCollector:
    """
    Ordered tenders offered against a cart.

    Split tender is just several entries. Change is a single derived
    figure (tendered - total), never attached to one tender.
    """

    def __init__(self, cart: Cart):
        self.cart = cart
        self.payments: list[TenderedPayment] = []

    def add_payment(self, method, amount) -> TenderedPayment:
        """
        Append a tender.

        Raises InvalidAmount for an unknown method or a non-numeric or
        non-positive amount; the collector is unchanged in that case.
        """
        try:
            tender_method = PaymentMethod.parse(method)
        except ValueError as exc:
            raise InvalidAmount(str(exc)) from exc

        payment = TenderedPayment(method=tender_method, amount_cents=parse_positive_amount(amount))
        self.payments.append(payment)
        return payment

    def remove_payment(self, index: int) -> int:
        """Remove one tender and return the new suggested amount (remaining due)."""
        if not 0 <= index < len(self.payments):
            raise PaymentNotFound(f"No payment at position {index}")
        del self.payments[index]
        return self.remaining_due_cents()

    def clear(self) -> None:
        self.payments = []

    def total_tendered_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)

    def remaining_due_cents(self) -> int:
        return max(0, self.cart.total_cents() - self.total_tendered_cents())

    def change_due_cents(self) -> int:
        return max(0, self.total_tendered_cents() - self.cart.total_cents())

    def suggested_amount_cents(self) -> int:
        """Pre-fill value for the next tender input."""
        return self.remaining_due_cents()

    def is_sufficient(self) -> bool:
        return self.total_tendered_cents() >= self.cart.total_cents()

    def snapshot(self) -> list[TenderedPayment]:
        return list(self.payments)
