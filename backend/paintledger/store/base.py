"""
Record store contract.

A RecordStore persists the record dataclasses from ``paintledger.records``
and hands out detached copies. Services depend only on this contract, so the
same business logic runs against the in-process store and the SQL store.
"""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import MISSING, fields
from typing import Any, Callable, Optional, TypeVar

from ..records import (
    Customer,
    CustomerBalance,
    Payment,
    Product,
    Return,
    ReturnItem,
    Sale,
    SaleItem,
    persisted_fields,
)

T = TypeVar("T")

RECORD_TYPES = (Customer, Product, Sale, SaleItem, Return, ReturnItem, Payment, CustomerBalance)


class StoreError(Exception):
    """Raised for misuse of the store contract (unknown record type or field)."""


def check_record_type(record_type) -> None:
    if record_type not in RECORD_TYPES:
        raise StoreError(f"Unsupported record type: {getattr(record_type, '__name__', record_type)!r}")


def check_fields(record_type, names) -> None:
    allowed = set(persisted_fields(record_type))
    unknown = sorted(set(names) - allowed)
    if unknown:
        raise StoreError(f"Unknown {record_type.__name__} field(s): {', '.join(unknown)}")


def has_field(record_type, name: str) -> bool:
    return name in persisted_fields(record_type)


def detach(record: T) -> T:
    """Copy of record with transient (read-time joined) attributes reset."""
    clone = copy.copy(record)
    for f in fields(clone):
        if not f.metadata.get("transient"):
            continue
        if f.default_factory is not MISSING:
            setattr(clone, f.name, f.default_factory())
        else:
            setattr(clone, f.name, f.default)
    return clone


class RecordStore(ABC):
    """
    Persistence contract shared by MemoryStore and SqlStore.

    Absent records are reported as None / False, never raised. Every
    primitive is atomic on its own; run_atomic groups several primitives into
    one unit that either fully applies or leaves no trace.
    """

    name = "abstract"

    @abstractmethod
    def insert(self, record: T) -> T:
        """Persist a new record; assigns id and created_at/updated_at when unset."""

    @abstractmethod
    def get(self, record_type: type[T], record_id: int) -> Optional[T]:
        ...

    @abstractmethod
    def find(
        self,
        record_type: type[T],
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        **criteria: Any,
    ) -> list[T]:
        """Records whose fields equal every criterion, ordered by order_by then id."""

    @abstractmethod
    def count(self, record_type) -> int:
        ...

    @abstractmethod
    def patch(self, record_type: type[T], record_id: int, values: dict) -> Optional[T]:
        """Merge values into a stored record and stamp updated_at. None when absent."""

    @abstractmethod
    def remove(self, record_type, record_id: int) -> bool:
        ...

    @abstractmethod
    def adjust_stock(self, product_id: int, delta: int) -> Optional[Product]:
        """Add delta to a product's stock in one atomic step. None when absent."""

    @abstractmethod
    def next_sequence(self, document_type: str, period: str) -> int:
        """Allocate the next counter value for (document_type, period), starting at 1."""

    @abstractmethod
    def save_balance(self, balance: CustomerBalance) -> CustomerBalance:
        """Insert or overwrite the balance row of balance.customer_id."""

    @abstractmethod
    def run_atomic(self, func: Callable[[], T]) -> T:
        """Run func as a single unit of work. Nested calls join the outer unit."""

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the backing storage (create tables)."""

    @abstractmethod
    def reset(self) -> None:
        """Drop every record and sequence."""

    @abstractmethod
    def health(self) -> dict:
        ...
