from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from paintledger.records import Sale
from paintledger.services import (
    customers_service,
    payment_service,
    products_service,
    reporting_service,
    return_service,
    sales_service,
)
from paintledger.services.reporting_service import ReportError
from paintledger.time_utils import utcnow


def _sell(store, customer, product, quantity=1, unit_price=10, **fields):
    values = {"customer_id": customer.id, "payment_method": "cash"}
    values.update(fields)
    return sales_service.create_sale(
        store, values, [{"product_id": product.id, "quantity": quantity, "unit_price": unit_price}]
    )


class TestDashboard:
    def test_stats_sum_sales_and_count_entities(self, store, customer, other_customer, product, second_product):
        sale = _sell(store, customer, product, quantity=3)
        _sell(store, other_customer, second_product, quantity=2, unit_price="7.50")
        return_service.create_return(
            store, {"sale_id": sale.id}, [{"product_id": product.id, "quantity": 1, "unit_price": 10}]
        )

        stats = reporting_service.get_dashboard_stats(store)

        assert stats == {
            "total_sales": Decimal("45.00"),
            "total_customers": 2,
            "total_products": 2,
            "total_returns": 1,
        }

    def test_stats_on_empty_store(self, store):
        stats = reporting_service.get_dashboard_stats(store)

        assert stats["total_sales"] == Decimal("0")
        assert stats["total_customers"] == 0

    def test_recent_sales_are_limited_and_resolved(self, store, customer, product):
        ids = [_sell(store, customer, product).id for _ in range(7)]

        recent = reporting_service.get_recent_sales(store, limit=5)

        assert [s.id for s in recent] == list(reversed(ids))[:5]
        assert recent[0].customer.id == customer.id

    def test_recent_customers_newest_first(self, store, customer, other_customer):
        recent = reporting_service.get_recent_customers(store, limit=5)

        assert [c.id for c in recent] == [other_customer.id, customer.id]

    def test_top_products_by_stock(self, store, product, second_product):
        low = products_service.create_product(store, {"name": "Gloss", "category": "decorative", "price": 3, "stock": 1})

        top = reporting_service.get_top_products(store, limit=2)

        assert [p.id for p in top] == [second_product.id, product.id]
        assert low.id not in [p.id for p in top]

    def test_invalid_limit(self, store):
        with pytest.raises(ReportError):
            reporting_service.get_recent_sales(store, limit=0)


class TestFinances:
    def test_overdue_sales_are_derived_not_stored(self, store, customer, product):
        old = _sell(store, customer, product, date=utcnow() - timedelta(days=40))
        old_paid = _sell(store, customer, product, date=utcnow() - timedelta(days=40))
        payment_service.create_payment(store, {"sale_id": old_paid.id, "amount": 10, "payment_method": "cash"})
        _sell(store, customer, product)

        overdue = reporting_service.get_overdue_sales(store, days=30)

        assert [s.id for s in overdue] == [old.id]
        assert overdue[0].customer.id == customer.id
        assert all(s.payment_status != "overdue" for s in store.find(Sale))

    def test_financial_overview(self, store, customer, product):
        sale = _sell(store, customer, product, quantity=4)
        payment_service.create_payment(store, {"sale_id": sale.id, "amount": 15, "payment_method": "cash"})
        return_service.create_return(
            store, {"sale_id": sale.id}, [{"product_id": product.id, "quantity": 1, "unit_price": 10}]
        )

        overview = reporting_service.get_financial_overview(store)

        assert overview["total_revenue"] == Decimal("40.00")
        assert overview["total_payments"] == Decimal("15.00")
        assert overview["total_returns"] == Decimal("10.00")
        assert overview["outstanding"] == Decimal("15.00")
        assert overview["sales_by_status"] == {"partially_paid": 1}
        assert overview["overdue_count"] == 0

    def test_monthly_totals_fill_empty_months(self, store, customer, product):
        now = datetime(2024, 6, 15, 12, 0)
        _sell(store, customer, product, quantity=2, date=datetime(2024, 4, 3))
        march_sale = _sell(store, customer, product, quantity=5, date=datetime(2024, 3, 20))
        return_service.create_return(
            store,
            {"sale_id": march_sale.id, "date": datetime(2024, 6, 1)},
            [{"product_id": product.id, "quantity": 1, "unit_price": 10}],
        )

        rows = reporting_service.get_monthly_totals(store, months=3, now=now)

        assert [r["month"] for r in rows] == ["2024-04", "2024-05", "2024-06"]
        assert rows[0]["sales"] == Decimal("20.00")
        assert rows[1]["sales"] == Decimal("0")
        assert rows[2]["returns"] == Decimal("10.00")
        assert rows[2]["net"] == Decimal("-10.00")

    def test_monthly_totals_rejects_bad_range(self, store):
        with pytest.raises(ReportError):
            reporting_service.get_monthly_totals(store, months=0)

    def test_payment_method_totals(self, store, customer, product):
        sale = _sell(store, customer, product, quantity=5)
        payment_service.create_payment(store, {"sale_id": sale.id, "amount": 20, "payment_method": "cash"})
        payment_service.create_payment(store, {"sale_id": sale.id, "amount": 10, "payment_method": "check"})
        payment_service.create_payment(store, {"sale_id": sale.id, "amount": 5, "payment_method": "cash"})

        totals = {row["payment_method"]: row for row in reporting_service.get_payment_method_totals(store)}

        assert totals["cash"]["total"] == Decimal("25.00")
        assert totals["cash"]["count"] == 2
        assert totals["check"]["total"] == Decimal("10.00")
        assert totals["credit_card"]["count"] == 0

    def test_outstanding_balances_sorted_descending(self, store, customer, other_customer, product):
        _sell(store, customer, product, quantity=1)
        _sell(store, other_customer, product, quantity=4)
        settled = customers_service.create_customer(store, {"name": "Paid Up", "classification": "individual"})
        paid = _sell(store, settled, product, quantity=1)
        payment_service.create_payment(store, {"sale_id": paid.id, "amount": 10, "payment_method": "cash"})

        balances = reporting_service.get_outstanding_balances(store)

        assert [b.customer_id for b in balances] == [other_customer.id, customer.id]
        assert balances[0].customer.name == other_customer.name
