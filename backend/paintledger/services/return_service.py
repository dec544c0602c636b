"""
Return Processing Service

DESIGN PRINCIPLES:
- Returns reference the original Sale for traceability
- The customer defaults to the original sale's customer
- Each returned item puts its quantity back into stock
- The customer's balance is credited through the ledger recomputation
- Returns are immutable once recorded (no update or delete)
"""
from __future__ import annotations

import logging
from dataclasses import replace

from ..money_utils import sum_money, to_money
from ..records import Customer, Product, Return, ReturnItem, Sale
from ..time_utils import to_utc_naive, utcnow
from .balance_service import update_customer_balance
from .document_service import RETURN_DOCUMENT, RETURN_PREFIX, next_document_number
from .inventory_service import apply_return_items
from .sales_service import build_line_items

logger = logging.getLogger(__name__)


class ReturnError(Exception):
    """Raised for return operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def resolve_return(store, ret: Return) -> Return:
    ret.customer = store.get(Customer, ret.customer_id)
    ret.items = store.find(ReturnItem, return_id=ret.id)
    for item in ret.items:
        item.product = store.get(Product, item.product_id)
    return ret


def list_returns(store) -> list[Return]:
    """Newest first."""
    returns = store.find(Return, order_by="created_at", descending=True)
    return [resolve_return(store, r) for r in returns]


def get_return(store, return_id: int) -> Return | None:
    ret = store.get(Return, return_id)
    if ret is None:
        return None
    return resolve_return(store, ret)


def get_returns_for_sale(store, sale_id: int) -> list[Return]:
    return [resolve_return(store, r) for r in store.find(Return, sale_id=sale_id, order_by="created_at")]


def create_return(store, fields: dict, items: list) -> Return:
    """
    Record goods returned against a sale.

    total_amount defaults to the sum of item totals. Returned quantities are
    not checked against what was sold.
    """
    fields = fields or {}
    sale_id = fields.get("sale_id")
    if sale_id is None:
        raise ReturnError("sale_id is required")
    try:
        returned_on = to_utc_naive(fields.get("date"))
        total = to_money(fields["total_amount"]) if fields.get("total_amount") is not None else None
    except ValueError as exc:
        raise ReturnError(str(exc))
    line_items = build_line_items(ReturnItem, items, ReturnError)

    def _op() -> Return:
        now = utcnow()
        sale = store.get(Sale, sale_id)
        customer_id = fields.get("customer_id")
        if customer_id is None:
            if sale is None:
                raise ReturnError("Cannot determine customer: sale not found", details={"sale_id": sale_id})
            customer_id = sale.customer_id
        elif sale is None:
            logger.warning("Return recorded against unknown sale %s", sale_id)

        ret = store.insert(
            Return(
                sale_id=sale_id,
                customer_id=customer_id,
                total_amount=total if total is not None else sum_money(i.total_price for i in line_items),
                return_number=next_document_number(
                    store, document_type=RETURN_DOCUMENT, prefix=RETURN_PREFIX, moment=now
                ),
                date=returned_on or now,
                reason=fields.get("reason"),
                created_by=fields.get("created_by"),
                created_at=now,
                updated_at=now,
            )
        )

        saved_items = [store.insert(replace(item, return_id=ret.id)) for item in line_items]
        apply_return_items(store, saved_items)
        update_customer_balance(store, customer_id)
        return get_return(store, ret.id)

    return store.run_atomic(_op)
