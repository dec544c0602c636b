# Overview: Dashboard and finance reporting; aggregates over customers, products, sales, returns and payments.

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from ..money_utils import ZERO, sum_money, to_money
from ..records import (
    PAYMENT_METHODS,
    Customer,
    CustomerBalance,
    Payment,
    Product,
    Return,
    Sale,
)
from ..time_utils import month_key, shift_month, utcnow
from .payment_service import OVERDUE_AFTER_DAYS, is_overdue
from .sales_service import resolve_sale


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _check_limit(limit: int) -> int:
    if limit is None or limit < 1:
        raise ReportError("limit must be >= 1")
    return min(limit, 100)


def get_dashboard_stats(store) -> dict:
    """Sum of sale totals plus customer, product and return counts."""
    return {
        "total_sales": sum_money(s.total_amount for s in store.find(Sale)),
        "total_customers": store.count(Customer),
        "total_products": store.count(Product),
        "total_returns": store.count(Return),
    }


def get_recent_sales(store, limit: int = 5) -> list[Sale]:
    sales = store.find(Sale, order_by="created_at", descending=True, limit=_check_limit(limit))
    return [resolve_sale(store, s) for s in sales]


def get_recent_customers(store, limit: int = 5) -> list[Customer]:
    return store.find(Customer, order_by="created_at", descending=True, limit=_check_limit(limit))


def get_top_products(store, limit: int = 5) -> list[Product]:
    """Products with the most stock on hand."""
    return store.find(Product, order_by="stock", descending=True, limit=_check_limit(limit))


def get_overdue_sales(store, *, days: int = OVERDUE_AFTER_DAYS, now: datetime | None = None) -> list[Sale]:
    """Unsettled sales dated more than `days` days ago, oldest first."""
    now = now or utcnow()
    overdue = [s for s in store.find(Sale, order_by="date") if is_overdue(s, now=now, days=days)]
    return [resolve_sale(store, s) for s in overdue]


def get_financial_overview(store, *, days: int = OVERDUE_AFTER_DAYS, now: datetime | None = None) -> dict:
    """
    Revenue position across all customers.

    outstanding = revenue - payments - returns (the sum of every customer's
    balance, computed directly from the documents).
    """
    sales = store.find(Sale)
    total_revenue = sum_money(s.total_amount for s in sales)
    total_payments = sum_money(p.amount for p in store.find(Payment))
    total_returns = sum_money(r.total_amount for r in store.find(Return))
    now = now or utcnow()
    overdue = [s for s in sales if is_overdue(s, now=now, days=days)]

    status_counts: dict[str, int] = defaultdict(int)
    for s in sales:
        status_counts[s.payment_status] += 1

    return {
        "total_revenue": total_revenue,
        "total_payments": total_payments,
        "total_returns": total_returns,
        "outstanding": total_revenue - total_payments - total_returns,
        "overdue_count": len(overdue),
        "overdue_amount": sum_money(s.total_amount for s in overdue),
        "sales_by_status": dict(status_counts),
    }


def get_monthly_totals(store, months: int = 6, *, now: datetime | None = None) -> list[dict]:
    """
    Sales and return totals per calendar month for the last `months` months
    (current month included), oldest first. Months without documents are
    reported as zero.
    """
    if months < 1 or months > 36:
        raise ReportError("months must be between 1 and 36")
    now = now or utcnow()

    keys = []
    for offset in range(months - 1, -1, -1):
        year, month = shift_month(now.year, now.month, -offset)
        keys.append(f"{year:04d}-{month:02d}")

    sales_by_month = defaultdict(lambda: ZERO)
    returns_by_month = defaultdict(lambda: ZERO)
    for s in store.find(Sale):
        if s.date is not None:
            sales_by_month[month_key(s.date)] += to_money(s.total_amount)
    for r in store.find(Return):
        if r.date is not None:
            returns_by_month[month_key(r.date)] += to_money(r.total_amount)

    return [
        {
            "month": key,
            "sales": sales_by_month[key],
            "returns": returns_by_month[key],
            "net": sales_by_month[key] - returns_by_month[key],
        }
        for key in keys
    ]


def get_payment_method_totals(store) -> list[dict]:
    """Collected amount and payment count per payment method."""
    totals = {method: ZERO for method in PAYMENT_METHODS}
    counts = {method: 0 for method in PAYMENT_METHODS}
    for p in store.find(Payment):
        totals[p.payment_method] = totals.get(p.payment_method, ZERO) + to_money(p.amount)
        counts[p.payment_method] = counts.get(p.payment_method, 0) + 1
    return [
        {"payment_method": method, "total": totals[method], "count": counts[method]}
        for method in totals
    ]


def get_outstanding_balances(store, limit: int | None = None) -> list[CustomerBalance]:
    """Stored customer balances above zero, largest first, customer resolved."""
    balances = [b for b in store.find(CustomerBalance) if to_money(b.balance) > ZERO]
    balances.sort(key=lambda b: (-to_money(b.balance), b.customer_id))
    if limit is not None:
        balances = balances[:_check_limit(limit)]
    for b in balances:
        b.customer = store.get(Customer, b.customer_id)
    return balances
