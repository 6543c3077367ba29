from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z
from .ids import new_id


class Customer(db.Model):
    """Customer registry entry; free text, no uniqueness rules."""
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)  # CPF

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "tax_id": self.tax_id,
            "created_at": to_utc_z(self.created_at),
        }
