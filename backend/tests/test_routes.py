"""
HTTP API tests against the SQL-backed application.
"""

from datetime import timedelta

import pytest

from paintledger.time_utils import to_utc_z, utcnow

pytestmark = pytest.mark.api


def _create_customer(client, **overrides):
    payload = {"name": "Atlas Hardware", "classification": "store"}
    payload.update(overrides)
    resp = client.post("/api/customers", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _create_product(client, **overrides):
    payload = {"name": "Acrylic Primer 10L", "category": "decorative", "price": "10.00", "stock": 20}
    payload.update(overrides)
    resp = client.post("/api/products", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _create_sale(client, customer, product, quantity=3, **overrides):
    payload = {
        "customer_id": customer["id"],
        "payment_method": "cash",
        "items": [{"product_id": product["id"], "quantity": quantity, "unit_price": product["price"]}],
    }
    payload.update(overrides)
    resp = client.post("/api/sales", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["sale"]


class TestCustomerRoutes:
    def test_crud_roundtrip(self, client):
        created = _create_customer(client, discount_percentage=7.5)
        assert created["discount_percentage"] == "7.50"

        resp = client.put(f"/api/customers/{created['id']}", json={"phone": "210 555 0199"})
        assert resp.status_code == 200
        assert resp.get_json()["phone"] == "210 555 0199"

        listing = client.get("/api/customers").get_json()
        assert listing["count"] == 1

        assert client.delete(f"/api/customers/{created['id']}").get_json() == {"ok": True}
        assert client.get(f"/api/customers/{created['id']}").status_code == 404

    def test_missing_customer(self, client):
        resp = client.get("/api/customers/999")

        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Customer not found"}

    def test_invalid_classification(self, client):
        resp = client.post("/api/customers", json={"name": "X", "classification": "wholesaler"})

        assert resp.status_code == 400

    def test_missing_required_fields(self, client):
        resp = client.post("/api/customers", json={"name": "X"})

        assert resp.status_code == 400
        assert "classification" in resp.get_json()["error"]


class TestProductRoutes:
    def test_filter_by_category(self, client):
        _create_product(client, name="Facade White", category="external_facades")
        _create_product(client, name="Grout", category="construction")

        resp = client.get("/api/products?category=construction")

        names = [p["name"] for p in resp.get_json()["items"]]
        assert names == ["Grout"]

    def test_bad_category_rejected(self, client):
        resp = client.post("/api/products", json={"name": "X", "category": "wallpaper", "price": 1})

        assert resp.status_code == 400

    def test_float_stock_rejected(self, client):
        resp = client.post("/api/products", json={"name": "X", "category": "decorative", "price": 1, "stock": 1.5})

        assert resp.status_code == 400

    def test_missing_product(self, client):
        assert client.put("/api/products/404", json={"stock": 1}).status_code == 404
        assert client.delete("/api/products/404").status_code == 404


class TestSaleRoutes:
    def test_create_sale_serializes_money_and_moves_stock(self, client):
        customer = _create_customer(client)
        product = _create_product(client)

        sale = _create_sale(client, customer, product, quantity=3)

        assert sale["total_amount"] == "30.00"
        assert sale["payment_status"] == "pending"
        assert sale["invoice_number"].startswith("INV-")
        assert sale["customer"]["name"] == "Atlas Hardware"
        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 17

    def test_invalid_item_quantity(self, client):
        customer = _create_customer(client)
        product = _create_product(client)

        resp = client.post("/api/sales", json={
            "customer_id": customer["id"],
            "payment_method": "cash",
            "items": [{"product_id": product["id"], "quantity": 0, "unit_price": "1"}],
        })

        assert resp.status_code == 400
        assert client.get("/api/sales").get_json()["count"] == 0

    def test_update_replaces_items(self, client):
        customer = _create_customer(client)
        product = _create_product(client)
        sale = _create_sale(client, customer, product, quantity=5)

        resp = client.put(f"/api/sales/{sale['id']}", json={
            "items": [{"product_id": product["id"], "quantity": 1, "unit_price": "10"}],
        })

        assert resp.status_code == 200
        assert resp.get_json()["sale"]["total_amount"] == "10.00"
        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 19

    def test_list_filters(self, client):
        customer = _create_customer(client)
        other = _create_customer(client, name="Other")
        product = _create_product(client)
        _create_sale(client, customer, product, quantity=1)
        _create_sale(client, other, product, quantity=1)

        resp = client.get(f"/api/sales?customer_id={other['id']}&status=pending")

        items = resp.get_json()["items"]
        assert [s["customer_id"] for s in items] == [other["id"]]

    def test_missing_sale(self, client):
        assert client.get("/api/sales/12").status_code == 404
        assert client.put("/api/sales/12", json={"notes": "x"}).status_code == 404

    @pytest.mark.parametrize("body", [[1, 2], "ab", 7])
    def test_non_object_body_rejected(self, client, body):
        resp = client.post("/api/sales", json=body)

        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid JSON payload"}
        assert client.put("/api/sales/1", json=body).status_code == 400


class TestPaymentAndReturnRoutes:
    def test_payment_updates_summary_and_balance(self, client):
        customer = _create_customer(client)
        product = _create_product(client)
        sale = _create_sale(client, customer, product, quantity=3)

        resp = client.post("/api/payments", json={"sale_id": sale["id"], "amount": "12.50", "payment_method": "check"})

        assert resp.status_code == 201
        summary = resp.get_json()["summary"]
        assert summary["total_paid"] == "12.50"
        assert summary["balance_due"] == "17.50"
        assert summary["payment_status"] == "partially_paid"
        assert summary["is_overdue"] is False

        balance = client.get(f"/api/customer-balances/{customer['id']}").get_json()["balance"]
        assert balance["balance"] == "17.50"

    def test_non_positive_payment_rejected(self, client):
        customer = _create_customer(client)
        product = _create_product(client)
        sale = _create_sale(client, customer, product)

        resp = client.post("/api/payments", json={"sale_id": sale["id"], "amount": 0, "payment_method": "cash"})

        assert resp.status_code == 400

    def test_summary_for_missing_sale(self, client):
        assert client.get("/api/payments/sales/77").status_code == 404

    def test_return_restocks_and_filters_by_sale(self, client):
        customer = _create_customer(client)
        product = _create_product(client)
        sale = _create_sale(client, customer, product, quantity=4)

        resp = client.post("/api/returns", json={
            "sale_id": sale["id"],
            "reason": "damaged lid",
            "items": [{"product_id": product["id"], "quantity": 1, "unit_price": "10"}],
        })

        assert resp.status_code == 201
        ret = resp.get_json()["return"]
        assert ret["return_number"].startswith("RET-")
        assert ret["customer_id"] == customer["id"]
        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 17
        listing = client.get(f"/api/returns?sale_id={sale['id']}").get_json()
        assert listing["count"] == 1

    @pytest.mark.parametrize("body", [[1, 2], "ab"])
    def test_non_object_return_body_rejected(self, client, body):
        resp = client.post("/api/returns", json=body)

        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid JSON payload"}

    def test_return_for_unknown_sale_without_customer(self, client):
        resp = client.post("/api/returns", json={"sale_id": 4242, "items": []})

        assert resp.status_code == 400


class TestBalanceRoutes:
    def test_recompute_unknown_customer(self, client):
        assert client.post("/api/customer-balances/5/recompute").status_code == 404

    def test_recompute_creates_balance(self, client):
        customer = _create_customer(client)

        resp = client.post(f"/api/customer-balances/{customer['id']}/recompute")

        assert resp.status_code == 200
        assert resp.get_json()["balance"]["balance"] == "0.00"


class TestReportRoutes:
    def test_dashboard_stats(self, client):
        customer = _create_customer(client)
        product = _create_product(client)
        _create_sale(client, customer, product, quantity=2)

        stats = client.get("/api/dashboard/stats").get_json()

        assert stats == {"total_sales": "20.00", "total_customers": 1, "total_products": 1, "total_returns": 0}

    def test_invalid_limit(self, client):
        assert client.get("/api/dashboard/recent-sales?limit=0").status_code == 400

    def test_overdue_is_derived_from_age(self, client):
        customer = _create_customer(client)
        product = _create_product(client)
        old = _create_sale(client, customer, product, date=to_utc_z(utcnow() - timedelta(days=45)))
        _create_sale(client, customer, product)

        overdue = client.get("/api/finances/overdue").get_json()
        assert [s["id"] for s in overdue["items"]] == [old["id"]]
        assert client.get("/api/finances/overdue?days=60").get_json()["count"] == 0
        assert client.get(f"/api/sales/{old['id']}").get_json()["sale"]["payment_status"] == "pending"

    def test_monthly_range_checked(self, client):
        assert client.get("/api/finances/monthly?months=3").status_code == 200
        assert client.get("/api/finances/monthly?months=99").status_code == 400

    def test_overview_serializes_money(self, client):
        overview = client.get("/api/finances/overview").get_json()

        assert overview["total_revenue"] == "0.00"
        assert overview["sales_by_status"] == {}


class TestSystemRoutes:
    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.get_json()["checks"]["store"]["details"]["backend"] == "sql"

    def test_version(self, client):
        assert client.get("/version").get_json()["record_store"] == "sql"
