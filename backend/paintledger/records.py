"""
Record types shared by every RecordStore implementation.

Records are plain dataclasses: stores hand out copies, never live rows, so a
caller mutating a record cannot change stored state behind the store's back.

Fields flagged ``transient`` are read-time joins (a sale's customer, an item's
product). Stores never persist them; services fill them in when reading and an
absent reference resolves to None.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .money_utils import money_str, ZERO
from .time_utils import to_utc_z


CUSTOMER_CLASSIFICATIONS = ("institution", "store", "individual")
PRODUCT_CATEGORIES = ("construction", "external_facades", "decorative")
PAYMENT_METHODS = ("cash", "credit_card", "bank_transfer", "check")

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PARTIALLY_PAID = "partially_paid"
PAYMENT_STATUS_OVERDUE = "overdue"
PAYMENT_STATUS_CANCELLED = "cancelled"

PAYMENT_STATUSES = (
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_OVERDUE,
    PAYMENT_STATUS_CANCELLED,
)


def _transient(default=None, default_factory=None):
    if default_factory is not None:
        return field(default_factory=default_factory, compare=False, repr=False, metadata={"transient": True})
    return field(default=default, compare=False, repr=False, metadata={"transient": True})


def persisted_fields(record_type) -> tuple[str, ...]:
    """Names of the fields a store persists for record_type."""
    return tuple(f.name for f in fields(record_type) if not f.metadata.get("transient"))


@dataclass
class Customer:
    name: str
    classification: str
    phone: Optional[str] = None
    address: Optional[str] = None
    discount_percentage: Decimal = ZERO
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "classification": self.classification,
            "discount_percentage": money_str(self.discount_percentage),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@dataclass
class Product:
    name: str
    category: str
    price: Decimal
    color_or_batch: Optional[str] = None
    stock: int = 0
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "color_or_batch": self.color_or_batch,
            "price": money_str(self.price),
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@dataclass
class SaleItem:
    """One line of a sale: product, quantity and unit price at sale time."""
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    sale_id: Optional[int] = None
    id: Optional[int] = None

    product: Optional[Product] = _transient()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "total_price": money_str(self.total_price),
            "product": self.product.to_dict() if self.product else None,
        }


@dataclass
class Sale:
    """
    Sales invoice.

    total_amount = subtotal - discount_amount. payment_status is derived from
    the payments recorded against the sale (see payment_service).
    """
    customer_id: int
    payment_method: str
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    payment_status: str = PAYMENT_STATUS_PENDING
    invoice_number: Optional[str] = None
    date: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    customer: Optional[Customer] = _transient()
    items: list[SaleItem] = _transient(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "date": to_utc_z(self.date),
            "subtotal": money_str(self.subtotal),
            "discount_amount": money_str(self.discount_amount),
            "total_amount": money_str(self.total_amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class ReturnItem:
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    return_id: Optional[int] = None
    id: Optional[int] = None

    product: Optional[Product] = _transient()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "total_price": money_str(self.total_price),
            "product": self.product.to_dict() if self.product else None,
        }


@dataclass
class Return:
    """Goods returned against an earlier sale; credits the customer's balance."""
    sale_id: int
    customer_id: int
    total_amount: Decimal = ZERO
    return_number: Optional[str] = None
    date: Optional[datetime] = None
    reason: Optional[str] = None
    created_by: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    customer: Optional[Customer] = _transient()
    items: list[ReturnItem] = _transient(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_number": self.return_number,
            "sale_id": self.sale_id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "date": to_utc_z(self.date),
            "total_amount": money_str(self.total_amount),
            "reason": self.reason,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class Payment:
    sale_id: int
    amount: Decimal
    payment_method: str
    date: Optional[datetime] = None
    reference: Optional[str] = None
    created_by: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount": money_str(self.amount),
            "payment_method": self.payment_method,
            "date": to_utc_z(self.date),
            "reference": self.reference,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


@dataclass
class CustomerBalance:
    """
    Derived running balance for one customer.

    Always recomputed wholesale from sales, payments and returns; never
    adjusted incrementally.
    """
    customer_id: int
    total_sales: Decimal = ZERO
    total_payments: Decimal = ZERO
    total_returns: Decimal = ZERO
    balance: Decimal = ZERO
    id: Optional[int] = None
    updated_at: Optional[datetime] = None

    customer: Optional[Customer] = _transient()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "total_sales": money_str(self.total_sales),
            "total_payments": money_str(self.total_payments),
            "total_returns": money_str(self.total_returns),
            "balance": money_str(self.balance),
            "updated_at": to_utc_z(self.updated_at),
        }


def jsonable(value):
    """Convert records, money and timestamps (nested in dicts/lists) to JSON-ready values."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Decimal):
        return money_str(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value
