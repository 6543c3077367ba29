"""
Cash Register Session Management Service

WHY: Track one open-to-close register period at a time, the sales settled
in it, and the reconciliation stored when it closes.

DESIGN PRINCIPLES:
- At most one OPEN session system-wide (enforced by the database index;
  see models.registers)
- Callers pass the session object explicitly; there is no ambient
  "current session"
- Sessions are frozen once closed
- Revenue is the sum of sale totals, never the sum of tenders (which
  would count change twice)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import AlreadyOpen, RegisterClosed
from ..models import CashRegisterSession, PaymentMethod, SessionStatus, new_id
from ..money import parse_non_negative_amount
from ..permissions import Capability, require_capability
from pdv.time_utils import utcnow


@dataclass
class CashPosition:
    """Per-method reconciliation of a set of sales."""
    by_method: dict[PaymentMethod, int] = field(default_factory=dict)
    total_revenue_cents: int = 0
    change_given_cents: int = 0
    sale_count: int = 0
    opening_balance_cents: int = 0

    @property
    def expected_balance_cents(self) -> int:
        return self.opening_balance_cents + self.total_revenue_cents

    def to_dict(self) -> dict:
        return {
            "by_method": {method.value: cents for method, cents in self.by_method.items()},
            "total_revenue_cents": self.total_revenue_cents,
            "change_given_cents": self.change_given_cents,
            "sale_count": self.sale_count,
            "opening_balance_cents": self.opening_balance_cents,
            "expected_balance_cents": self.expected_balance_cents,
        }


def tally_payment_methods(sales) -> dict[PaymentMethod, int]:
    """
    Gross tenders grouped by method, net of change.

    Change always comes out of the drawer, so each sale's change is
    deducted from CASH (even when the sale had no cash tender). Card and
    PIX totals are never reduced. Every method is present in the result.
    """
    totals = {method: 0 for method in PaymentMethod}
    for sale in sales:
        for payment in sale.payments:
            totals[PaymentMethod.parse(payment.method)] += payment.amount_cents
        totals[PaymentMethod.CASH] -= sale.change_cents or 0
    return totals


def cash_position(session: CashRegisterSession) -> CashPosition:
    sales = list(session.sales)
    return CashPosition(
        by_method=tally_payment_methods(sales),
        total_revenue_cents=sum(sale.total_cents for sale in sales),
        change_given_cents=sum(sale.change_cents or 0 for sale in sales),
        sale_count=len(sales),
        opening_balance_cents=session.opening_balance_cents or 0,
    )


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

def get_open_session(repository) -> CashRegisterSession | None:
    """The OPEN session, if any."""
    return repository.get_open_session()


def open_session(repository, opening_balance, operator) -> CashRegisterSession:
    """
    Open a new register session.

    Args:
        repository: persistence collaborator
        opening_balance: starting cash in drawer (currency units, e.g. "100.00")
        operator: user opening the register

    Raises:
        InvalidAmount: opening balance missing, non-numeric or negative
        AlreadyOpen: another session is OPEN (including a lost race at insert)
    """
    require_capability(operator, Capability.REGISTER)
    opening_cents = parse_non_negative_amount(opening_balance)

    existing = repository.get_open_session()
    if existing is not None:
        raise AlreadyOpen(
            "A register session is already open",
            details={"session_id": existing.id},
        )

    session = CashRegisterSession(
        id=new_id(),
        operator_id=operator.id,
        status=SessionStatus.OPEN,
        opening_balance_cents=opening_cents,
        opened_at=utcnow(),
    )
    session = repository.insert_session(session)

    current_app.logger.info(
        "Register session %s opened by %s with %d cents",
        session.id, operator.id, opening_cents,
    )
    return session


def close_session(
    repository,
    session: CashRegisterSession | None,
    observations: str | None = None,
    counted_balance=None,
    *,
    operator=None,
) -> CashRegisterSession:
    """
    Close a session and store its reconciliation.

    expected = opening + sum of sale totals. Without a manual count the
    closing balance is taken to be the expected one (difference 0). With
    `counted_balance`, closing is the counted cash and difference is
    counted - expected.

    IMMUTABLE: a closed session cannot be closed again or reopened.
    """
    if operator is not None:
        require_capability(operator, Capability.REGISTER)

    if session is None or not session.is_open:
        raise RegisterClosed("No open register session to close")

    counted = None if counted_balance is None else parse_non_negative_amount(counted_balance)
    note = (observations or "").strip() or None

    # runs against the locked row, with its sales reloaded
    def finalize(locked: CashRegisterSession) -> None:
        expected = cash_position(locked).expected_balance_cents
        closing = expected if counted is None else counted

        locked.status = SessionStatus.CLOSED
        locked.closed_at = utcnow()
        locked.expected_balance_cents = expected
        locked.closing_balance_cents = closing
        locked.difference_cents = closing - expected
        locked.observations = note

    session = repository.close_session(session.id, finalize)

    current_app.logger.info(
        "Register session %s closed: %d sales, expected %d cents, difference %d cents",
        session.id, len(session.sales), session.expected_balance_cents, session.difference_cents,
    )
    return session


def session_summary(session: CashRegisterSession) -> dict:
    """Session details plus its live cash position."""
    return {
        "session": session.to_dict(),
        "position": cash_position(session).to_dict(),
        "is_closed": session.status == SessionStatus.CLOSED,
    }
