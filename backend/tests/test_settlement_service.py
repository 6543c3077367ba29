"""
Sale settlement tests.

Verifies:
- Change and snapshot on success
- Rejections leave cart, tenders and session untouched
- A persistence failure keeps the cart for retry
"""

import pytest

from pdv.checkout import MAX_QUANTITY, Cart, PaymentCollector
from pdv.errors import (
    EmptyCart,
    InsufficientPayment,
    InvalidAmount,
    NotFound,
    PermissionDenied,
    PersistenceFailure,
    ProductUnavailable,
    RegisterClosed,
    ValidationError,
)
from pdv.extensions import db
from pdv.models import PaymentMethod, Product, Sale, SaleLine, SalePayment
from pdv.services import catalog_service, customer_service, register_service, settlement_service
from pdv.time_utils import utcnow


@pytest.fixture
def open_session(repository, operator_user):
    return register_service.open_session(repository, "100.00", operator_user)


@pytest.fixture
def cart(tradicional, drip):
    cart = Cart()
    cart.add_line(tradicional)
    cart.add_line(drip)
    cart.add_line(drip)
    return cart


class FailingRepository:
    """Delegates everything but refuses to record sales."""

    def __init__(self, inner):
        self.inner = inner
        self.attempts = 0

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def insert_sale(self, sale, session_id):
        self.attempts += 1
        raise PersistenceFailure("Could not record sale")


class TestSettle:

    def test_cash_sale_with_change(self, repository, cart, open_session, operator_user):
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "40.00")

        sale = settlement_service.settle(repository, cart, collector, operator_user, open_session)

        assert sale.total_cents == 3400
        assert sale.change_cents == 600
        assert sale.tendered_cents == 4000
        assert sale.session_id == open_session.id
        assert sale.operator_id == operator_user.id
        assert [(l.name, l.quantity, l.line_total_cents) for l in sale.lines] == [
            ("Tradicional", 1, 2500),
            ("Drip Coffee", 2, 900),
        ]
        assert cart.is_empty()
        assert collector.payments == []
        assert [s.id for s in open_session.sales] == [sale.id]

    def test_split_tender_exact(self, repository, cart, open_session, operator_user):
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "20.00")
        collector.add_payment("PIX", "14.00")

        sale = settlement_service.settle(repository, cart, collector, operator_user, open_session)

        assert sale.change_cents == 0
        assert [(p.method, p.amount_cents) for p in sale.payments] == [
            (PaymentMethod.CASH, 2000),
            (PaymentMethod.PIX, 1400),
        ]

    def test_sale_records_customer(self, repository, cart, open_session, operator_user):
        customer = customer_service.create_customer(repository, {"name": "Ana"})
        collector = PaymentCollector(cart)
        collector.add_payment("DEBIT", "34.00")

        sale = settlement_service.settle(repository, cart, collector, operator_user, open_session, customer)

        assert sale.customer_id == customer.id

    def test_empty_cart(self, repository, open_session, operator_user):
        cart = Cart()
        collector = PaymentCollector(cart)

        with pytest.raises(EmptyCart):
            settlement_service.settle(repository, cart, collector, operator_user, open_session)

        assert db.session.query(Sale).count() == 0
        assert open_session.sales == []

    def test_insufficient_payment(self, repository, cart, open_session, operator_user):
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "30.00")

        with pytest.raises(InsufficientPayment) as exc_info:
            settlement_service.settle(repository, cart, collector, operator_user, open_session)

        assert exc_info.value.details["remaining_cents"] == 400
        assert db.session.query(Sale).count() == 0
        assert cart.total_cents() == 3400
        assert len(collector.payments) == 1

    def test_no_session(self, repository, cart, operator_user):
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "40.00")

        with pytest.raises(RegisterClosed):
            settlement_service.settle(repository, cart, collector, operator_user, None)
        assert not cart.is_empty()

    def test_closed_session(self, repository, cart, open_session, operator_user):
        register_service.close_session(repository, open_session)
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "40.00")

        with pytest.raises(RegisterClosed):
            settlement_service.settle(repository, cart, collector, operator_user, open_session)
        assert db.session.query(Sale).count() == 0

    def test_total_above_limit_rejected(self, repository, open_session, operator_user):
        lot = Product(id="p-lot", name="Lote", category="", price_cents=999_999_999, is_active=True)
        cart = Cart()
        cart.add_line(lot)
        cart.add_line(lot)
        collector = PaymentCollector(cart)

        with pytest.raises(InvalidAmount) as exc_info:
            settlement_service.settle(repository, cart, collector, operator_user, open_session)

        assert exc_info.value.details["total_cents"] == 1_999_999_998
        assert db.session.query(Sale).count() == 0

    def test_repository_rechecks_session_status(self, repository, open_session, operator_user):
        register_service.close_session(repository, open_session)
        late_sale = Sale(total_cents=2500, change_cents=0, sold_at=utcnow(), operator_id=operator_user.id)

        with pytest.raises(RegisterClosed):
            repository.insert_sale(late_sale, open_session.id)
        assert db.session.query(Sale).count() == 0

    def test_persistence_failure_keeps_cart(self, repository, cart, open_session, operator_user):
        failing = FailingRepository(repository)
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "40.00")

        with pytest.raises(PersistenceFailure) as exc_info:
            settlement_service.settle(failing, cart, collector, operator_user, open_session)

        assert exc_info.value.retryable is True
        assert cart.total_cents() == 3400
        assert collector.total_tendered_cents() == 4000

        # Retry against a healthy store settles the very same order
        sale = settlement_service.settle(repository, cart, collector, operator_user, open_session)
        assert sale.total_cents == 3400
        assert db.session.query(Sale).count() == 1

    def test_commit_failure_writes_nothing(self, repository, cart, open_session, operator_user, monkeypatch):
        from sqlalchemy.exc import SQLAlchemyError

        def broken_commit():
            raise SQLAlchemyError("disk I/O error")

        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "40.00")
        monkeypatch.setattr(db.session(), "commit", broken_commit)

        with pytest.raises(PersistenceFailure):
            settlement_service.settle(repository, cart, collector, operator_user, open_session)

        monkeypatch.undo()
        assert db.session.query(Sale).count() == 0
        assert db.session.query(SaleLine).count() == 0
        assert db.session.query(SalePayment).count() == 0
        assert not cart.is_empty()

    def test_operator_needs_sales_capability(self, repository, cart, open_session, operator_user):
        operator_user.is_active = False
        collector = PaymentCollector(cart)
        collector.add_payment("CASH", "40.00")

        with pytest.raises(PermissionDenied):
            settlement_service.settle(repository, cart, collector, operator_user, open_session)


class TestCheckout:

    def test_checkout_replays_lines_and_payments(self, repository, open_session, operator_user, tradicional, drip):
        sale = settlement_service.checkout(
            repository,
            operator_user,
            [{"product_id": tradicional.id, "quantity": 1}, {"product_id": drip.id, "quantity": 2}],
            [{"method": "CASH", "amount": "40.00"}],
        )
        assert sale.total_cents == 3400
        assert sale.change_cents == 600

    def test_repeated_product_lines_merge(self, repository, open_session, operator_user, drip):
        sale = settlement_service.checkout(
            repository,
            operator_user,
            [{"product_id": drip.id}, {"product_id": drip.id, "quantity": 2}],
            [{"method": "PIX", "amount": "13.50"}],
        )
        assert [(l.product_id, l.quantity) for l in sale.lines] == [(drip.id, 3)]

    def test_unknown_product(self, repository, open_session, operator_user):
        with pytest.raises(NotFound):
            settlement_service.checkout(repository, operator_user, [{"product_id": "nope"}], [])

    def test_inactive_product(self, repository, open_session, operator_user, retired):
        with pytest.raises(ProductUnavailable):
            settlement_service.checkout(repository, operator_user, [{"product_id": retired.id}], [])

    @pytest.mark.parametrize("quantity", [0, -1, "2", 1.5, True])
    def test_bad_quantity(self, repository, open_session, operator_user, drip, quantity):
        with pytest.raises(ValidationError):
            settlement_service.checkout(
                repository, operator_user, [{"product_id": drip.id, "quantity": quantity}], []
            )

    def test_oversized_quantity_on_free_product(self, repository, open_session, operator_user):
        sample = catalog_service.create_product(repository, {"name": "Amostra", "category": "Brindes", "price": "0"})

        with pytest.raises(ValidationError) as exc_info:
            settlement_service.checkout(
                repository, operator_user, [{"product_id": sample.id, "quantity": 10 ** 20}], []
            )

        assert exc_info.value.details["max_quantity"] == MAX_QUANTITY
        assert db.session.query(Sale).count() == 0

    def test_unknown_customer(self, repository, open_session, operator_user, drip):
        with pytest.raises(ValidationError):
            settlement_service.checkout(
                repository, operator_user, [{"product_id": drip.id}], [{"method": "CASH", "amount": "5"}],
                customer_id="missing",
            )

    def test_without_open_session(self, repository, operator_user, drip):
        with pytest.raises(RegisterClosed):
            settlement_service.checkout(
                repository, operator_user, [{"product_id": drip.id}], [{"method": "CASH", "amount": "5"}]
            )
