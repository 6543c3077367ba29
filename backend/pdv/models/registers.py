from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z
from .enums import SessionStatus
from .ids import new_id


class CashRegisterSession(db.Model):
    """
    Register session (one open-to-close period).

    LIFECYCLE:
    - OPEN: sales can be settled against it
    - CLOSED: reconciliation stored, frozen

    SINGLE OPEN SESSION: the partial unique index below admits at most one
    row with status OPEN, so two terminals racing to open cannot both win.
    """
    __tablename__ = "cash_register_sessions"
    __table_args__ = (
        db.Index(
            "uq_cash_register_sessions_single_open",
            "status",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_cash_register_sessions_opened_at", "opened_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    operator_id = db.Column(db.String(32), nullable=False, index=True)

    status = db.Column(
        db.Enum(SessionStatus, native_enum=False, length=16, validate_strings=True),
        nullable=False,
        default=SessionStatus.OPEN,
    )

    # Cash tracking (all amounts in cents)
    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_balance_cents = db.Column(db.Integer, nullable=True)
    expected_balance_cents = db.Column(db.Integer, nullable=True)  # opening + total sales
    difference_cents = db.Column(db.Integer, nullable=True)  # closing - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    observations = db.Column(db.Text, nullable=True)

    sales = db.relationship(
        "Sale",
        back_populates="session",
        order_by="Sale.sold_at",
        lazy="selectin",
    )

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

    def to_dict(self, include_sales: bool = False) -> dict:
        data = {
            "id": self.id,
            "operator_id": self.operator_id,
            "status": self.status.value if self.status else None,
            "opening_balance_cents": self.opening_balance_cents,
            "closing_balance_cents": self.closing_balance_cents,
            "expected_balance_cents": self.expected_balance_cents,
            "difference_cents": self.difference_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "observations": self.observations,
            "sales_count": len(self.sales),
        }
        if include_sales:
            data["sales"] = [sale.to_dict() for sale in self.sales]
        return data
