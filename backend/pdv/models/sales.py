from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z
from .enums import PaymentMethod
from .ids import new_id


class Sale(db.Model):
    """
    Settled sale (append-only ledger entry owned by its register session).

    Lines and payments are written in the same transaction as the header.
    Nothing here is updated after insert.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_session_sold_at", "session_id", "sold_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    session_id = db.Column(db.String(32), db.ForeignKey("cash_register_sessions.id"), nullable=False, index=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Attribution (plain references: users/customers may be edited or removed later)
    operator_id = db.Column(db.String(32), nullable=False, index=True)
    customer_id = db.Column(db.String(32), nullable=True, index=True)

    # All amounts in cents
    total_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    session = db.relationship("CashRegisterSession", back_populates="sales")
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payments = db.relationship(
        "SalePayment",
        back_populates="sale",
        order_by="SalePayment.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tendered_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "sold_at": to_utc_z(self.sold_at),
            "operator_id": self.operator_id,
            "customer_id": self.customer_id,
            "total_cents": self.total_cents,
            "tendered_cents": self.tendered_cents,
            "change_cents": self.change_cents,
            "lines": [line.to_dict() for line in self.lines],
            "payments": [payment.to_dict() for payment in self.payments],
        }


class SaleLine(db.Model):
    """Snapshot of one cart line at settlement time."""
    __tablename__ = "sale_lines"

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(32), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    # Not a foreign key: the product row may change or disappear later
    product_id = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class SalePayment(db.Model):
    """
    One tender applied to a sale.

    Change is not attributed to an individual tender; it lives on the
    sale and is charged against CASH when positions are reconciled.
    """
    __tablename__ = "sale_payments"

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(32), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    method = db.Column(
        db.Enum(PaymentMethod, native_enum=False, length=16, validate_strings=True),
        nullable=False,
        index=True,
    )
    amount_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "method": self.method.value if self.method else None,
            "amount_cents": self.amount_cents,
        }
