"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401
- Operators are denied catalog and user management (403)
- Register, checkout and report flows end to end
"""

import pytest

from pdv.models import Sale
from pdv.extensions import db


# =============================================================================
# AUTHENTICATION
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/customers"),
            ("GET", "/api/users"),
            ("GET", "/api/registers/current"),
            ("POST", "/api/registers/open"),
            ("POST", "/api/registers/close"),
            ("GET", "/api/registers/history"),
            ("POST", "/api/sales/checkout"),
            ("GET", "/api/reports/sales"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestLogin:

    def test_login_returns_token_and_capabilities(self, client, operator_user):
        resp = client.post("/api/auth/login", json={"username": "caixa", "password": "1234"})

        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["user"]["role"] == "OPERATOR"
        assert "password_hash" not in resp.json["user"]
        assert resp.json["capabilities"] == ["CUSTOMERS", "REGISTER", "REPORTS", "SALES"]

    def test_wrong_password(self, client, operator_user):
        resp = client.post("/api/auth/login", json={"username": "caixa", "password": "0000"})
        assert resp.status_code == 401

    def test_numeric_pin(self, client, operator_user):
        resp = client.post("/api/auth/login", json={"username": "caixa", "pin": 1234})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "caixa"})
        assert resp.status_code == 400

    def test_me_and_logout(self, client, operator_headers):
        me = client.get("/api/auth/me", headers=operator_headers)
        assert me.status_code == 200
        assert me.json["user"]["username"] == "caixa"

        assert client.post("/api/auth/logout", headers=operator_headers).status_code == 200
        assert client.get("/api/auth/me", headers=operator_headers).status_code == 401


# =============================================================================
# OPERATOR DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestOperatorDenied:

    def test_cannot_create_product(self, client, operator_headers):
        resp = client.post("/api/products", json={"name": "X", "price": "1"}, headers=operator_headers)
        assert resp.status_code == 403
        assert resp.json["required_capability"] == "CATALOG"

    def test_cannot_delete_product(self, client, operator_headers, drip):
        resp = client.delete(f"/api/products/{drip.id}", headers=operator_headers)
        assert resp.status_code == 403

    def test_cannot_list_users(self, client, operator_headers):
        assert client.get("/api/users", headers=operator_headers).status_code == 403

    def test_cannot_create_user(self, client, operator_headers):
        resp = client.post(
            "/api/users",
            json={"username": "x", "name": "X", "password": "1234"},
            headers=operator_headers,
        )
        assert resp.status_code == 403

    def test_inactive_include_ignored_for_operator(self, client, operator_headers, drip, retired):
        resp = client.get("/api/products?include_inactive=true", headers=operator_headers)
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json["items"]] == [drip.id]


# =============================================================================
# CATALOG, CUSTOMERS, USERS
# =============================================================================


class TestCatalogApi:

    def test_admin_crud(self, client, admin_headers):
        created = client.post(
            "/api/products",
            json={"name": "Gourmet", "category": "Cafés em Grão", "price": "32.00"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        product_id = created.json["product"]["id"]
        assert created.json["product"]["price_cents"] == 3200

        updated = client.put(f"/api/products/{product_id}", json={"price": "33"}, headers=admin_headers)
        assert updated.status_code == 200
        assert updated.json["product"]["price_cents"] == 3300

        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 404

    def test_invalid_price(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "X", "price": "abc"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "InvalidAmount"

    def test_filters(self, client, operator_headers, tradicional, drip):
        resp = client.get("/api/products", query_string={"category": "Práticos"}, headers=operator_headers)
        assert [p["name"] for p in resp.json["items"]] == ["Drip Coffee"]
        assert resp.json["categories"] == ["Cafés em Grão", "Práticos"]

        resp = client.get("/api/products?q=trad", headers=operator_headers)
        assert [p["name"] for p in resp.json["items"]] == ["Tradicional"]


class TestCustomersApi:

    def test_create_search_update(self, client, operator_headers):
        created = client.post("/api/customers", json={"name": "Ana Souza"}, headers=operator_headers)
        assert created.status_code == 201
        customer_id = created.json["customer"]["id"]

        found = client.get("/api/customers?q=ana", headers=operator_headers)
        assert [c["id"] for c in found.json["items"]] == [customer_id]

        updated = client.put(f"/api/customers/{customer_id}", json={"phone": "1199"}, headers=operator_headers)
        assert updated.json["customer"]["phone"] == "1199"

    def test_name_required(self, client, operator_headers):
        resp = client.post("/api/customers", json={"phone": "1"}, headers=operator_headers)
        assert resp.status_code == 400


class TestUsersApi:

    def test_admin_manages_users(self, client, admin_headers, admin_user):
        created = client.post(
            "/api/users",
            json={"username": "maria", "name": "Maria", "password": "4321"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        user_id = created.json["user"]["id"]
        assert created.json["user"]["role"] == "OPERATOR"

        listed = client.get("/api/users", headers=admin_headers)
        assert {u["username"] for u in listed.json["items"]} == {"admin", "maria"}

        updated = client.put(f"/api/users/{user_id}", json={"is_active": False}, headers=admin_headers)
        assert updated.json["user"]["is_active"] is False
        login = client.post("/api/auth/login", json={"username": "maria", "password": "4321"})
        assert login.status_code == 401

        assert client.delete(f"/api/users/{user_id}", headers=admin_headers).status_code == 200

    def test_short_secret_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "maria", "name": "Maria", "password": "12"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_cannot_delete_self(self, client, admin_headers, admin_user):
        resp = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 400


# =============================================================================
# REGISTER + CHECKOUT + REPORTS
# =============================================================================


class TestRegisterFlow:

    def test_full_shift(self, client, operator_headers, tradicional, drip):
        current = client.get("/api/registers/current", headers=operator_headers)
        assert current.json == {"session": None, "is_open": False}

        opened = client.post("/api/registers/open", json={"opening_balance": "100.00"}, headers=operator_headers)
        assert opened.status_code == 201
        session_id = opened.json["session"]["id"]

        again = client.post("/api/registers/open", json={"opening_balance": "1"}, headers=operator_headers)
        assert again.status_code == 409
        assert again.json["code"] == "AlreadyOpen"

        sale = client.post(
            "/api/sales/checkout",
            json={
                "lines": [{"product_id": tradicional.id, "quantity": 1}, {"product_id": drip.id, "quantity": 2}],
                "payments": [{"method": "CASH", "amount": "40.00"}],
            },
            headers=operator_headers,
        )
        assert sale.status_code == 201
        assert sale.json["sale"]["total_cents"] == 3400
        assert sale.json["sale"]["change_cents"] == 600
        assert sale.json["sale"]["session_id"] == session_id

        position = client.get("/api/registers/current/position", headers=operator_headers)
        assert position.json["position"]["by_method"]["CASH"] == 3400
        assert position.json["position"]["expected_balance_cents"] == 13400

        closed = client.post("/api/registers/close", json={"observations": "ok"}, headers=operator_headers)
        assert closed.status_code == 200
        assert closed.json["session"]["status"] == "CLOSED"
        assert closed.json["session"]["expected_balance_cents"] == 13400
        assert closed.json["session"]["difference_cents"] == 0

        history = client.get("/api/registers/history?include_sales=true", headers=operator_headers)
        assert history.json["count"] == 1
        assert history.json["items"][0]["sales"][0]["total_cents"] == 3400

    def test_open_with_invalid_balance(self, client, operator_headers):
        resp = client.post("/api/registers/open", json={"opening_balance": "abc"}, headers=operator_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "InvalidAmount"

    def test_close_without_open_session(self, client, operator_headers):
        resp = client.post("/api/registers/close", json={}, headers=operator_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "RegisterClosed"

    def test_position_without_open_session(self, client, operator_headers):
        assert client.get("/api/registers/current/position", headers=operator_headers).status_code == 409


class TestCheckoutApi:

    @pytest.fixture
    def opened(self, client, operator_headers):
        client.post("/api/registers/open", json={"opening_balance": "0"}, headers=operator_headers)

    def test_register_closed(self, client, operator_headers, drip):
        resp = client.post(
            "/api/sales/checkout",
            json={"lines": [{"product_id": drip.id}], "payments": [{"method": "CASH", "amount": "5"}]},
            headers=operator_headers,
        )
        assert resp.status_code == 409
        assert resp.json["code"] == "RegisterClosed"

    def test_empty_cart(self, client, operator_headers, opened):
        resp = client.post("/api/sales/checkout", json={"lines": [], "payments": []}, headers=operator_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "EmptyCart"

    def test_insufficient_payment(self, client, operator_headers, opened, drip):
        resp = client.post(
            "/api/sales/checkout",
            json={"lines": [{"product_id": drip.id}], "payments": [{"method": "PIX", "amount": "4.00"}]},
            headers=operator_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "InsufficientPayment"
        assert resp.json["details"]["remaining_cents"] == 50
        assert db.session.query(Sale).count() == 0

    def test_client_price_is_ignored(self, client, operator_headers, opened, drip):
        resp = client.post(
            "/api/sales/checkout",
            json={
                "lines": [{"product_id": drip.id, "quantity": 1, "unit_price": "0.01"}],
                "payments": [{"method": "CASH", "amount": "4.50"}],
            },
            headers=operator_headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["total_cents"] == 450

    def test_huge_payment_amount(self, client, operator_headers, opened, drip):
        resp = client.post(
            "/api/sales/checkout",
            json={"lines": [{"product_id": drip.id}], "payments": [{"method": "CASH", "amount": "1e30"}]},
            headers=operator_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "InvalidAmount"
        assert db.session.query(Sale).count() == 0

    def test_huge_quantity(self, client, operator_headers, opened, drip):
        resp = client.post(
            "/api/sales/checkout",
            json={"lines": [{"product_id": drip.id, "quantity": 10 ** 20}], "payments": []},
            headers=operator_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "ValidationError"

    def test_malformed_payload(self, client, operator_headers, opened):
        resp = client.post("/api/sales/checkout", json={"lines": "abc"}, headers=operator_headers)
        assert resp.status_code == 400


class TestReportsApi:

    def test_sales_report(self, client, operator_headers, tradicional, drip):
        client.post("/api/registers/open", json={"opening_balance": "0"}, headers=operator_headers)
        client.post(
            "/api/sales/checkout",
            json={
                "lines": [{"product_id": tradicional.id}, {"product_id": drip.id, "quantity": 2}],
                "payments": [{"method": "CASH", "amount": "20.00"}, {"method": "PIX", "amount": "14.00"}],
            },
            headers=operator_headers,
        )

        resp = client.get("/api/reports/sales?range=today", headers=operator_headers)

        assert resp.status_code == 200
        assert resp.json["kpis"]["total_revenue_cents"] == 3400
        assert resp.json["kpis"]["best_seller"]["product_id"] == drip.id
        assert resp.json["payment_methods"] == {"CASH": 2000, "PIX": 1400, "DEBIT": 0, "CREDIT": 0}

    def test_bad_range(self, client, operator_headers):
        resp = client.get("/api/reports/sales?range=forever", headers=operator_headers)
        assert resp.status_code == 400


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
