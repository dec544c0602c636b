# Overview: Service-layer operations for inventory; applies sale and return line items to product stock.

# backend/paintledger/services/inventory_service.py
"""
Stock semantics (authoritative)

- Product.stock is a stored, mutable on-hand count.
- A sale line item decreases stock by its quantity; a return line item
  increases it by its quantity.
- Replacing a sale's items first reverts every old item (stock += old qty),
  then applies the new ones (stock -= new qty).
- There is no floor at zero: overselling is accepted and only logged.
- Each adjustment is a single atomic store operation, so concurrent
  adjustments to the same product never lose an update.
- Items referencing a product that no longer exists are kept as-is and
  skipped for stock purposes.
"""
from __future__ import annotations

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


def adjust_product_stock(store, product_id: int, delta: int, *, reason: str):
    """Apply delta to one product's stock; returns the updated Product or None."""
    product = store.adjust_stock(product_id, delta)
    if product is None:
        logger.warning("Stock not adjusted for %s: product %s not found", reason, product_id)
        return None
    if product.stock < 0:
        logger.warning(
            "Product %s stock is negative (%s) after %s",
            product_id,
            product.stock,
            reason,
        )
    return product


def apply_sale_items(store, items: Iterable) -> None:
    for item in items:
        adjust_product_stock(store, item.product_id, -item.quantity, reason=f"sale {item.sale_id}")


def revert_sale_items(store, items: Iterable) -> None:
    for item in items:
        adjust_product_stock(store, item.product_id, item.quantity, reason=f"revert of sale {item.sale_id}")


def apply_return_items(store, items: Iterable) -> None:
    for item in items:
        adjust_product_stock(store, item.product_id, item.quantity, reason=f"return {item.return_id}")
