"""
Sales Service - invoice creation and editing

Creating or editing a sale is one unit of work: invoice number, sale row,
line items, stock movement and the customer's balance either all apply or
none do.
"""
from __future__ import annotations

import logging
from dataclasses import replace

from ..money_utils import ZERO, sum_money, to_money
from ..records import (
    Customer,
    PAYMENT_METHODS,
    Payment,
    Product,
    Sale,
    SaleItem,
)
from ..time_utils import to_utc_naive, utcnow
from ..validation import enforce_rules_sale
from .balance_service import update_customer_balance
from .document_service import INVOICE_DOCUMENT, INVOICE_PREFIX, next_document_number
from .inventory_service import apply_sale_items, revert_sale_items
from .payment_service import derive_payment_status

logger = logging.getLogger(__name__)

SALE_MUTABLE_FIELDS = {
    "customer_id",
    "date",
    "subtotal",
    "discount_amount",
    "total_amount",
    "payment_method",
    "payment_status",
    "notes",
    "created_by",
}
SALE_MONEY_FIELDS = {"subtotal", "discount_amount", "total_amount"}


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def build_line_items(item_cls, raw_items, error_cls) -> list:
    """
    Turn raw line item dicts into unsaved item records.

    total_price defaults to quantity * unit_price; a caller-supplied
    total_price is kept as given.
    """
    built = []
    for index, raw in enumerate(raw_items or []):
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise error_cls(
                "Item quantity must be a positive integer",
                details={"index": index, "quantity": quantity},
            )
        if raw.get("product_id") is None:
            raise error_cls("Item product_id is required", details={"index": index})
        try:
            unit_price = to_money(raw.get("unit_price"))
            total_price = (
                to_money(raw["total_price"])
                if raw.get("total_price") is not None
                else to_money(unit_price * quantity)
            )
        except ValueError as exc:
            raise error_cls(str(exc), details={"index": index})
        built.append(
            item_cls(
                product_id=raw["product_id"],
                quantity=quantity,
                unit_price=unit_price,
                total_price=total_price,
            )
        )
    return built


def _clean_sale_fields(fields: dict) -> dict:
    patch = {k: v for k, v in (fields or {}).items() if k in SALE_MUTABLE_FIELDS}
    try:
        for key in SALE_MONEY_FIELDS & patch.keys():
            if patch[key] is None:
                del patch[key]
            else:
                patch[key] = to_money(patch[key])
        if "date" in patch:
            patch["date"] = to_utc_naive(patch["date"])
            if patch["date"] is None:
                del patch["date"]
        enforce_rules_sale(patch)
    except ValueError as exc:
        raise SaleError(str(exc))
    return patch


def _derive_total(subtotal, discount):
    """subtotal - discount, floored at zero when the discount exceeds the subtotal."""
    total = to_money(subtotal) - to_money(discount)
    if total < ZERO:
        logger.warning("Discount %s exceeds subtotal %s; total set to 0.00", discount, subtotal)
        return ZERO
    return total


def _resolve_items(store, items: list) -> list:
    for item in items:
        item.product = store.get(Product, item.product_id)
    return items


def resolve_sale(store, sale: Sale) -> Sale:
    """Fill in the read-time joins: customer and ordered items with products."""
    sale.customer = store.get(Customer, sale.customer_id)
    sale.items = _resolve_items(store, store.find(SaleItem, sale_id=sale.id))
    return sale


def list_sales(store, *, limit: int | None = None) -> list[Sale]:
    """Newest first. Customers that no longer exist resolve to None."""
    sales = store.find(Sale, order_by="created_at", descending=True, limit=limit)
    return [resolve_sale(store, s) for s in sales]


def get_sale(store, sale_id: int) -> Sale | None:
    sale = store.get(Sale, sale_id)
    if sale is None:
        return None
    return resolve_sale(store, sale)


def create_sale(store, fields: dict, items: list) -> Sale:
    """
    Create an invoice with its line items.

    subtotal defaults to the sum of item totals and total_amount to
    subtotal - discount_amount, never below zero. Each item decreases its
    product's stock and the customer's balance is recomputed.
    """
    patch = _clean_sale_fields(fields)
    if patch.get("customer_id") is None:
        raise SaleError("customer_id is required")
    if patch.get("payment_method") not in PAYMENT_METHODS:
        raise SaleError(
            "Invalid payment method",
            details={"payment_method": patch.get("payment_method"), "allowed": list(PAYMENT_METHODS)},
        )
    line_items = build_line_items(SaleItem, items, SaleError)

    def _op() -> Sale:
        now = utcnow()
        subtotal = patch.get("subtotal")
        if subtotal is None:
            subtotal = sum_money(i.total_price for i in line_items)
        discount = patch.get("discount_amount", to_money(0))
        total = patch.get("total_amount")
        if total is None:
            total = _derive_total(subtotal, discount)
        elif total != subtotal - discount:
            logger.warning("Sale total %s does not match subtotal %s - discount %s", total, subtotal, discount)

        if store.get(Customer, patch["customer_id"]) is None:
            logger.warning("Creating sale for unknown customer %s", patch["customer_id"])

        values = dict(patch, subtotal=subtotal, discount_amount=discount, total_amount=total)
        values.setdefault("date", now)
        sale = store.insert(
            Sale(
                invoice_number=next_document_number(
                    store, document_type=INVOICE_DOCUMENT, prefix=INVOICE_PREFIX, moment=now
                ),
                created_at=now,
                updated_at=now,
                **values,
            )
        )

        saved_items = [store.insert(replace(item, sale_id=sale.id)) for item in line_items]
        apply_sale_items(store, saved_items)
        update_customer_balance(store, sale.customer_id)
        return get_sale(store, sale.id)

    return store.run_atomic(_op)


def update_sale(store, sale_id: int, fields: dict, items: list | None = None) -> Sale | None:
    """
    Merge fields into a sale; when items is given, replace its line items.

    Item replacement reverts every old item's stock before applying the new
    ones. Without caller-supplied totals they are recomputed from the new
    items. Balances of both the previous and the current customer are
    recomputed. Returns None when the sale does not exist.
    """
    patch = _clean_sale_fields(fields)
    if "customer_id" in patch and patch["customer_id"] is None:
        raise SaleError("customer_id cannot be null")
    line_items = build_line_items(SaleItem, items, SaleError) if items is not None else None

    def _op() -> Sale | None:
        current = store.get(Sale, sale_id)
        if current is None:
            return None
        values = dict(patch)

        if line_items is not None:
            old_items = store.find(SaleItem, sale_id=sale_id)
            revert_sale_items(store, old_items)
            for old in old_items:
                store.remove(SaleItem, old.id)
            saved_items = [store.insert(replace(item, sale_id=sale_id)) for item in line_items]
            apply_sale_items(store, saved_items)
            values.setdefault("subtotal", sum_money(i.total_price for i in saved_items))

        if "total_amount" not in values and ({"subtotal", "discount_amount"} & values.keys()):
            subtotal = values.get("subtotal", current.subtotal)
            discount = values.get("discount_amount", current.discount_amount)
            values["total_amount"] = _derive_total(subtotal, discount)

        updated = store.patch(Sale, sale_id, values)

        if "total_amount" in values and "payment_status" not in values:
            payments = store.find(Payment, sale_id=sale_id)
            if payments:
                status = derive_payment_status(sum_money(p.amount for p in payments), updated.total_amount)
                if status != updated.payment_status:
                    updated = store.patch(Sale, sale_id, {"payment_status": status})

        update_customer_balance(store, updated.customer_id)
        if current.customer_id != updated.customer_id:
            update_customer_balance(store, current.customer_id)
        return get_sale(store, sale_id)

    return store.run_atomic(_op)
