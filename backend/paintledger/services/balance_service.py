# Overview: Ledger aggregation; recomputes each customer's balance from sales, payments and returns.

from __future__ import annotations

import logging

from ..money_utils import sum_money
from ..records import Customer, CustomerBalance, Payment, Return, Sale

logger = logging.getLogger(__name__)


def compute_customer_balance(store, customer_id: int) -> CustomerBalance:
    """
    Full recomputation of a customer's position (not persisted).

    total_sales    = sum of the customer's sale totals
    total_payments = sum of payments against those sales
    total_returns  = sum of the customer's return totals
    balance        = total_sales - total_payments - total_returns
    """
    sales = store.find(Sale, customer_id=customer_id)
    returns = store.find(Return, customer_id=customer_id)

    total_sales = sum_money(s.total_amount for s in sales)
    total_returns = sum_money(r.total_amount for r in returns)
    total_payments = sum_money(
        p.amount
        for s in sales
        for p in store.find(Payment, sale_id=s.id)
    )

    return CustomerBalance(
        customer_id=customer_id,
        total_sales=total_sales,
        total_payments=total_payments,
        total_returns=total_returns,
        balance=total_sales - total_payments - total_returns,
    )


def update_customer_balance(store, customer_id: int) -> CustomerBalance:
    """Recompute and upsert the customer's balance as one unit of work."""
    def _op() -> CustomerBalance:
        return store.save_balance(compute_customer_balance(store, customer_id))

    return store.run_atomic(_op)


def get_customer_balance(store, customer_id: int) -> CustomerBalance | None:
    found = store.find(CustomerBalance, customer_id=customer_id, limit=1)
    if not found:
        return None
    balance = found[0]
    balance.customer = store.get(Customer, customer_id)
    return balance


def rebuild_all_balances(store) -> list[CustomerBalance]:
    """
    Recompute every customer's balance.

    Covers customers referenced only by orphaned sales or returns too, so a
    manual reconciliation leaves no stale rows behind.
    """
    def _op() -> list[CustomerBalance]:
        customer_ids = {c.id for c in store.find(Customer)}
        customer_ids.update(s.customer_id for s in store.find(Sale))
        customer_ids.update(r.customer_id for r in store.find(Return))
        customer_ids.update(b.customer_id for b in store.find(CustomerBalance))
        return [
            store.save_balance(compute_customer_balance(store, customer_id))
            for customer_id in sorted(customer_ids)
        ]

    balances = store.run_atomic(_op)
    logger.info("Rebuilt %d customer balances", len(balances))
    return balances
