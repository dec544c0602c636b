# backend/paintledger/services/products_service.py
"""
Product catalog operations.

stock can be set directly through create/update (stock counts, corrections);
sales and returns move it through inventory_service instead.
"""
from __future__ import annotations

from ..money_utils import to_money
from ..records import Product
from ..validation import ValidationError, enforce_rules_product

PRODUCT_MUTABLE_FIELDS = {"name", "category", "color_or_batch", "price", "stock"}


def apply_product_patch(fields: dict) -> dict:
    patch = {k: v for k, v in (fields or {}).items() if k in PRODUCT_MUTABLE_FIELDS}
    if patch.get("price") is not None:
        try:
            patch["price"] = to_money(patch["price"])
        except ValueError:
            raise ValidationError("price must be a number")
    if "stock" in patch:
        stock = patch["stock"]
        if stock is None:
            patch["stock"] = 0
        elif isinstance(stock, bool) or not isinstance(stock, int):
            raise ValidationError("stock must be an integer")
    enforce_rules_product(patch)
    return patch


def list_products(store) -> list[Product]:
    return store.find(Product, order_by="name")


def get_product(store, product_id: int) -> Product | None:
    return store.get(Product, product_id)


def create_product(store, fields: dict) -> Product:
    patch = apply_product_patch(fields)
    for required in ("name", "category", "price"):
        if patch.get(required) is None or patch.get(required) == "":
            raise ValidationError(f"{required} is required")
    return store.insert(Product(**patch))


def update_product(store, product_id: int, fields: dict) -> Product | None:
    patch = apply_product_patch(fields)
    return store.patch(Product, product_id, patch)


def delete_product(store, product_id: int) -> bool:
    return store.remove(Product, product_id)
