from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .money_utils import to_money
from .records import CUSTOMER_CLASSIFICATIONS, PAYMENT_METHODS, PAYMENT_STATUSES, PRODUCT_CATEGORIES
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = Decimal("9999999.99")


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_money(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        return to_money(value)
    except ValueError:
        raise ValidationError(f"{key} must be a number")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Money / percentages (Numeric(p, 2)): JSON numbers or numeric strings
    if isinstance(coltype, Numeric):
        return _coerce_money(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def validate_line_items(raw_items: Any, *, label: str = "items") -> list[dict]:
    """
    Validate sale/return line items: a list of objects with product_id,
    quantity, unit_price and an optional total_price.

    Quantity must be positive. Prices are normalized to cents; a missing
    total_price is left out so the service derives quantity * unit_price.
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError(f"{label} must be a list")

    cleaned = []
    for index, raw in enumerate(raw_items):
        where = f"{label}[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{where} must be an object")
        unknown = sorted(set(raw) - {"product_id", "quantity", "unit_price", "total_price"})
        if unknown:
            raise ValidationError(f"{where}: field not allowed: {', '.join(unknown)}")
        for key in ("product_id", "quantity", "unit_price"):
            if raw.get(key) is None:
                raise ValidationError(f"{where}.{key} is required")

        item = {
            "product_id": _coerce_int(f"{where}.product_id", raw["product_id"]),
            "quantity": _coerce_int(f"{where}.quantity", raw["quantity"]),
            "unit_price": _coerce_money(f"{where}.unit_price", raw["unit_price"]),
        }
        if item["quantity"] <= 0:
            raise ValidationError(f"{where}.quantity must be > 0")
        if item["unit_price"] < 0:
            raise ValidationError(f"{where}.unit_price must be >= 0")
        if raw.get("total_price") is not None:
            item["total_price"] = _coerce_money(f"{where}.total_price", raw["total_price"])
        cleaned.append(item)
    return cleaned


def _require_not_blank(patch: dict, key: str) -> None:
    if key in patch and (patch[key] is None or str(patch[key]).strip() == ""):
        raise ValidationError(f"{key} cannot be blank")


def enforce_rules_customer(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _require_not_blank(patch, "name")
    if "classification" in patch and patch["classification"] not in CUSTOMER_CLASSIFICATIONS:
        raise ValidationError(
            f"classification must be one of: {', '.join(CUSTOMER_CLASSIFICATIONS)}"
        )
    discount = patch.get("discount_percentage")
    if discount is not None and not (0 <= discount <= 100):
        raise ValidationError("discount_percentage must be between 0 and 100")


def enforce_rules_product(patch: dict) -> None:
    _require_not_blank(patch, "name")
    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")
    if "price" in patch:
        price = patch["price"]
        if price is None:
            raise ValidationError("price cannot be null")
        # Range checks
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE:,}")


def enforce_rules_sale(patch: dict) -> None:
    if "payment_method" in patch and patch["payment_method"] not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if "payment_status" in patch and patch["payment_status"] not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    if patch.get("discount_amount") is not None and patch["discount_amount"] < 0:
        raise ValidationError("discount_amount must be >= 0")


def enforce_rules_payment(patch: dict) -> None:
    if "payment_method" in patch and patch["payment_method"] not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if "amount" in patch and patch["amount"] is not None and patch["amount"] <= 0:
        raise ValidationError("amount must be > 0")
