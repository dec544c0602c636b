# Overview: Service-layer operations for payment; records payments and derives sale payment status.

"""
Payment Processing Service

DESIGN PRINCIPLES:
- Payments are separate from sales (many-to-one relationship)
- Partial payments: several payments may settle one sale
- Append-only: payments are never updated or deleted
- Status is derived: after every payment the sale's payment_status is
  reclassified from the sum of all its payments
- Overdue is never stored: it is computed at query time from age and status
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from ..money_utils import ZERO, sum_money, to_money
from ..records import (
    PAYMENT_METHODS,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_PENDING,
    Payment,
    Sale,
)
from ..time_utils import to_utc_naive, utcnow
from .balance_service import update_customer_balance

logger = logging.getLogger(__name__)

# Unpaid sales older than this are reported as overdue
OVERDUE_AFTER_DAYS = 30

UNSETTLED_STATUSES = (PAYMENT_STATUS_PENDING, PAYMENT_STATUS_PARTIALLY_PAID)


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


def derive_payment_status(total_paid: Decimal, total_amount: Decimal) -> str:
    """
    paid            if total_paid >= total_amount
    partially_paid  if 0 < total_paid < total_amount
    pending         otherwise
    """
    total_paid = to_money(total_paid)
    total_amount = to_money(total_amount)
    if total_paid >= total_amount:
        return PAYMENT_STATUS_PAID
    if total_paid > ZERO:
        return PAYMENT_STATUS_PARTIALLY_PAID
    return PAYMENT_STATUS_PENDING


def is_overdue(sale: Sale, *, now: datetime | None = None, days: int = OVERDUE_AFTER_DAYS) -> bool:
    """Unsettled and dated more than `days` days ago."""
    if sale.payment_status not in UNSETTLED_STATUSES or sale.date is None:
        return False
    return sale.date < (now or utcnow()) - timedelta(days=days)


def list_payments(store) -> list[Payment]:
    """Newest first."""
    return store.find(Payment, order_by="date", descending=True)


def get_payment(store, payment_id: int) -> Payment | None:
    return store.get(Payment, payment_id)


def get_payments_for_sale(store, sale_id: int) -> list[Payment]:
    return store.find(Payment, sale_id=sale_id, order_by="date")


def create_payment(store, fields: dict) -> Payment:
    """
    Record a payment, reclassify the sale's payment status (counting this
    payment) and recompute the customer's balance, all as one unit.

    A payment whose sale does not exist is stored as-is and logged.
    """
    fields = fields or {}
    sale_id = fields.get("sale_id")
    if sale_id is None:
        raise PaymentError("sale_id is required")
    try:
        amount = to_money(fields.get("amount"))
    except ValueError:
        raise PaymentError("amount must be a number")
    if amount <= ZERO:
        raise PaymentError("Payment amount must be positive")
    payment_method = fields.get("payment_method")
    if payment_method not in PAYMENT_METHODS:
        raise PaymentError(f"Invalid payment method: {payment_method}")
    try:
        paid_on = to_utc_naive(fields.get("date"))
    except ValueError:
        raise PaymentError("date must be an ISO-8601 datetime")

    def _op() -> Payment:
        now = utcnow()
        payment = store.insert(
            Payment(
                sale_id=sale_id,
                amount=amount,
                payment_method=payment_method,
                date=paid_on or now,
                reference=fields.get("reference"),
                created_by=fields.get("created_by"),
                created_at=now,
            )
        )

        sale = store.get(Sale, sale_id)
        if sale is None:
            logger.warning("Payment %s recorded for unknown sale %s", payment.id, sale_id)
            return payment

        total_paid = sum_money(p.amount for p in store.find(Payment, sale_id=sale_id))
        status = derive_payment_status(total_paid, sale.total_amount)
        store.patch(Sale, sale_id, {"payment_status": status})
        update_customer_balance(store, sale.customer_id)
        return payment

    return store.run_atomic(_op)


def get_payment_summary(store, sale_id: int, *, overdue_days: int = OVERDUE_AFTER_DAYS) -> dict | None:
    """Payment position of one sale; None when the sale does not exist."""
    sale = store.get(Sale, sale_id)
    if sale is None:
        return None

    payments = get_payments_for_sale(store, sale_id)
    total_paid = sum_money(p.amount for p in payments)
    balance_due = max(to_money(sale.total_amount) - total_paid, ZERO)

    return {
        "sale_id": sale.id,
        "invoice_number": sale.invoice_number,
        "total_amount": to_money(sale.total_amount),
        "total_paid": total_paid,
        "balance_due": balance_due,
        "payment_status": sale.payment_status,
        "is_overdue": is_overdue(sale, days=overdue_days),
        "payments": payments,
    }
