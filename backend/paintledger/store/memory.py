"""
In-process record store.

State lives in plain dictionaries owned by one MemoryStore instance; create
as many independent stores as needed (one per app, one per test). A
re-entrant lock serializes every primitive and every atomic unit. The
outermost unit snapshots all state and restores it if the unit raises.
"""
from __future__ import annotations

import copy
import threading
from typing import Any, Callable, Optional

from ..records import CustomerBalance, Product, persisted_fields
from ..time_utils import utcnow
from .base import (
    RECORD_TYPES,
    RecordStore,
    check_fields,
    check_record_type,
    detach,
    has_field,
)


def _sort_key(value):
    # None sorts before any value, like NULLS FIRST
    return (value is not None, value)


class MemoryStore(RecordStore):
    name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._clear()

    def _clear(self) -> None:
        self._tables: dict[type, dict[int, Any]] = {t: {} for t in RECORD_TYPES}
        self._last_ids: dict[type, int] = {t: 0 for t in RECORD_TYPES}
        self._sequences: dict[tuple[str, str], int] = {}

    def _snapshot(self):
        return copy.deepcopy((self._tables, self._last_ids, self._sequences))

    def _restore(self, snapshot) -> None:
        self._tables, self._last_ids, self._sequences = snapshot

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def run_atomic(self, func: Callable):
        with self._lock:
            outermost = self._depth == 0
            snapshot = self._snapshot() if outermost else None
            self._depth += 1
            try:
                return func()
            except Exception:
                if outermost:
                    self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def insert(self, record):
        record_type = type(record)
        check_record_type(record_type)
        with self._lock:
            stored = detach(record)
            now = utcnow()
            if stored.id is None:
                self._last_ids[record_type] += 1
                stored.id = self._last_ids[record_type]
            elif stored.id in self._tables[record_type]:
                raise ValueError(f"{record_type.__name__} {stored.id} already exists")
            else:
                self._last_ids[record_type] = max(self._last_ids[record_type], stored.id)
            if has_field(record_type, "created_at") and stored.created_at is None:
                stored.created_at = now
            if has_field(record_type, "updated_at") and stored.updated_at is None:
                stored.updated_at = now
            self._tables[record_type][stored.id] = stored
            return detach(stored)

    def get(self, record_type, record_id: int):
        check_record_type(record_type)
        with self._lock:
            stored = self._tables[record_type].get(record_id)
            return detach(stored) if stored is not None else None

    def find(self, record_type, *, order_by=None, descending=False, limit=None, **criteria):
        check_record_type(record_type)
        check_fields(record_type, criteria.keys())
        if order_by is not None:
            check_fields(record_type, [order_by])
        with self._lock:
            rows = [
                row for row in self._tables[record_type].values()
                if all(getattr(row, k) == v for k, v in criteria.items())
            ]
            if order_by is None:
                rows.sort(key=lambda r: r.id, reverse=descending)
            else:
                rows.sort(key=lambda r: (_sort_key(getattr(r, order_by)), r.id), reverse=descending)
            if limit is not None:
                rows = rows[:limit]
            return [detach(row) for row in rows]

    def count(self, record_type) -> int:
        check_record_type(record_type)
        with self._lock:
            return len(self._tables[record_type])

    def patch(self, record_type, record_id: int, values: dict):
        check_record_type(record_type)
        check_fields(record_type, values.keys())
        if "id" in values:
            raise ValueError("id cannot be patched")
        with self._lock:
            stored = self._tables[record_type].get(record_id)
            if stored is None:
                return None
            for k, v in values.items():
                setattr(stored, k, v)
            if has_field(record_type, "updated_at"):
                stored.updated_at = utcnow()
            return detach(stored)

    def remove(self, record_type, record_id: int) -> bool:
        check_record_type(record_type)
        with self._lock:
            return self._tables[record_type].pop(record_id, None) is not None

    def adjust_stock(self, product_id: int, delta: int) -> Optional[Product]:
        with self._lock:
            stored = self._tables[Product].get(product_id)
            if stored is None:
                return None
            stored.stock += delta
            stored.updated_at = utcnow()
            return detach(stored)

    def next_sequence(self, document_type: str, period: str) -> int:
        with self._lock:
            key = (document_type, period)
            allocated = self._sequences.get(key, 0) + 1
            self._sequences[key] = allocated
            return allocated

    def save_balance(self, balance: CustomerBalance) -> CustomerBalance:
        with self._lock:
            existing = next(
                (row for row in self._tables[CustomerBalance].values()
                 if row.customer_id == balance.customer_id),
                None,
            )
            if existing is None:
                fresh = detach(balance)
                fresh.id = None
                fresh.updated_at = utcnow()
                return self.insert(fresh)
            for name in persisted_fields(CustomerBalance):
                if name in ("id", "customer_id", "updated_at"):
                    continue
                setattr(existing, name, getattr(balance, name))
            existing.updated_at = utcnow()
            return detach(existing)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        return None

    def reset(self) -> None:
        with self._lock:
            self._clear()

    def health(self) -> dict:
        with self._lock:
            return {
                "backend": self.name,
                "records": {t.__name__: len(rows) for t, rows in self._tables.items()},
            }
