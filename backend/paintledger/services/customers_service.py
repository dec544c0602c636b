# backend/paintledger/services/customers_service.py
"""
Customer catalog operations.

Customers are hard-deleted. Sales and returns keep their customer_id after
the customer is gone; reads then resolve the customer to None.
"""
from __future__ import annotations

import logging

from ..money_utils import to_money
from ..records import Customer, Sale
from ..validation import ValidationError, enforce_rules_customer

logger = logging.getLogger(__name__)

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "address", "classification", "discount_percentage"}


def apply_customer_patch(fields: dict) -> dict:
    patch = {k: v for k, v in (fields or {}).items() if k in CUSTOMER_MUTABLE_FIELDS}
    if "discount_percentage" in patch:
        try:
            patch["discount_percentage"] = to_money(patch["discount_percentage"])
        except ValueError:
            raise ValidationError("discount_percentage must be a number")
    enforce_rules_customer(patch)
    return patch


def list_customers(store) -> list[Customer]:
    return store.find(Customer, order_by="name")


def get_customer(store, customer_id: int) -> Customer | None:
    return store.get(Customer, customer_id)


def create_customer(store, fields: dict) -> Customer:
    patch = apply_customer_patch(fields)
    for required in ("name", "classification"):
        if not patch.get(required):
            raise ValidationError(f"{required} is required")
    return store.insert(Customer(**patch))


def update_customer(store, customer_id: int, fields: dict) -> Customer | None:
    patch = apply_customer_patch(fields)
    return store.patch(Customer, customer_id, patch)


def delete_customer(store, customer_id: int) -> bool:
    deleted = store.remove(Customer, customer_id)
    if deleted:
        orphaned = store.find(Sale, customer_id=customer_id)
        if orphaned:
            logger.warning("Deleted customer %s still referenced by %d sale(s)", customer_id, len(orphaned))
    return deleted
