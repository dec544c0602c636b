"""
Relational record store backed by Flask-SQLAlchemy.

Each record type maps to one ORM model with identically named columns. Rows
never leave this module: reads are converted to detached record copies.

Transactions: primitives called outside run_atomic commit immediately.
Inside run_atomic they only flush, and the outermost unit commits once (or
rolls back on any error). The outermost unit is retried on transient
concurrency failures via run_with_retry.
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, text, update
from sqlalchemy.exc import IntegrityError

from ..models import (
    CustomerBalanceModel,
    CustomerModel,
    DocumentSequence,
    PaymentModel,
    ProductModel,
    ReturnItemModel,
    ReturnModel,
    SaleItemModel,
    SaleModel,
)
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
from ..services.concurrency import lock_for_update, run_with_retry
from ..time_utils import to_utc_naive, utcnow
from .base import RecordStore, check_fields, check_record_type, has_field

MODEL_FOR = {
    Customer: CustomerModel,
    Product: ProductModel,
    Sale: SaleModel,
    SaleItem: SaleItemModel,
    Return: ReturnModel,
    ReturnItem: ReturnItemModel,
    Payment: PaymentModel,
    CustomerBalance: CustomerBalanceModel,
}


def _to_record(record_type, row):
    values = {}
    for name in persisted_fields(record_type):
        value = getattr(row, name)
        if isinstance(value, datetime):
            value = to_utc_naive(value)
        values[name] = value
    return record_type(**values)


class SqlStore(RecordStore):
    name = "sql"

    def __init__(self, db):
        self._db = db
        self._local = threading.local()

    @property
    def _session(self):
        return self._db.session

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    def _finish(self) -> None:
        """Commit when running outside a unit of work, otherwise just flush."""
        if self._depth == 0:
            self._session.commit()
        else:
            self._session.flush()

    @contextmanager
    def _writing(self):
        """A standalone write that fails is rolled back so the session stays usable."""
        try:
            yield
        except Exception:
            if self._depth == 0:
                self._session.rollback()
            raise

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def run_atomic(self, func: Callable):
        if self._depth > 0:
            self._local.depth += 1
            try:
                return func()
            finally:
                self._local.depth -= 1

        def _op():
            self._local.depth = 1
            try:
                result = func()
                self._session.commit()
                return result
            except Exception:
                self._session.rollback()
                raise
            finally:
                self._local.depth = 0

        return run_with_retry(_op)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def insert(self, record):
        record_type = type(record)
        check_record_type(record_type)
        model = MODEL_FOR[record_type]
        values = {name: getattr(record, name) for name in persisted_fields(record_type)}
        if values.get("id") is None:
            values.pop("id", None)
        now = utcnow()
        if has_field(record_type, "created_at") and values.get("created_at") is None:
            values["created_at"] = now
        if has_field(record_type, "updated_at") and values.get("updated_at") is None:
            values["updated_at"] = now

        with self._writing():
            row = model(**values)
            self._session.add(row)
            self._session.flush()  # ensure row.id exists
            saved = _to_record(record_type, row)
            self._finish()
        return saved

    def get(self, record_type, record_id: int):
        check_record_type(record_type)
        row = self._session.get(MODEL_FOR[record_type], record_id)
        return _to_record(record_type, row) if row is not None else None

    def find(self, record_type, *, order_by=None, descending=False, limit=None, **criteria):
        check_record_type(record_type)
        check_fields(record_type, criteria.keys())
        model = MODEL_FOR[record_type]

        query = self._session.query(model).filter_by(**criteria)
        if order_by is not None:
            check_fields(record_type, [order_by])
            column = getattr(model, order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        query = query.order_by(model.id.desc() if descending else model.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return [_to_record(record_type, row) for row in query.all()]

    def count(self, record_type) -> int:
        check_record_type(record_type)
        model = MODEL_FOR[record_type]
        return self._session.query(func.count(model.id)).scalar() or 0

    def patch(self, record_type, record_id: int, values: dict):
        check_record_type(record_type)
        check_fields(record_type, values.keys())
        if "id" in values:
            raise ValueError("id cannot be patched")
        model = MODEL_FOR[record_type]

        with self._writing():
            row = lock_for_update(self._session.query(model).filter_by(id=record_id)).first()
            if row is None:
                return None
            for k, v in values.items():
                setattr(row, k, v)
            if has_field(record_type, "updated_at"):
                row.updated_at = utcnow()
            self._session.flush()
            saved = _to_record(record_type, row)
            self._finish()
        return saved

    def remove(self, record_type, record_id: int) -> bool:
        check_record_type(record_type)
        with self._writing():
            row = self._session.get(MODEL_FOR[record_type], record_id)
            if row is None:
                return False
            self._session.delete(row)
            self._session.flush()
            self._finish()
        return True

    def adjust_stock(self, product_id: int, delta: int) -> Optional[Product]:
        stmt = (
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        with self._writing():
            result = self._session.execute(stmt)
            if not result.rowcount:
                return None
            row = (
                self._session.query(ProductModel)
                .filter_by(id=product_id)
                .populate_existing()
                .one()
            )
            saved = _to_record(Product, row)
            self._finish()
        return saved

    def next_sequence(self, document_type: str, period: str) -> int:
        stmt = (
            update(DocumentSequence)
            .where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.period == period,
            )
            .values(next_number=DocumentSequence.next_number + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        def _current() -> int:
            current = (
                self._session.query(DocumentSequence.next_number)
                .filter_by(document_type=document_type, period=period)
                .scalar()
            )
            return current - 1

        with self._writing():
            result = self._session.execute(stmt)
            if result.rowcount:
                allocated = _current()
            else:
                try:
                    with self._session.begin_nested():
                        self._session.add(
                            DocumentSequence(document_type=document_type, period=period, next_number=2)
                        )
                    allocated = 1
                except IntegrityError:
                    # Another writer created the counter first; take the next value from it
                    result = self._session.execute(stmt)
                    if not result.rowcount:
                        raise
                    allocated = _current()

            self._finish()
        return allocated

    def save_balance(self, balance: CustomerBalance) -> CustomerBalance:
        with self._writing():
            row = lock_for_update(
                self._session.query(CustomerBalanceModel).filter_by(customer_id=balance.customer_id)
            ).first()
            if row is None:
                row = CustomerBalanceModel(customer_id=balance.customer_id)
                self._session.add(row)
            row.total_sales = balance.total_sales
            row.total_payments = balance.total_payments
            row.total_returns = balance.total_returns
            row.balance = balance.balance
            row.updated_at = utcnow()
            self._session.flush()
            saved = _to_record(CustomerBalance, row)
            self._finish()
        return saved

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        self._db.create_all()

    def reset(self) -> None:
        self._session.remove()
        self._db.drop_all()
        self._db.create_all()

    def health(self) -> dict:
        start_time = time.time()
        self._session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "backend": self.name,
            "latency_ms": round(elapsed_ms, 2),
            "records": {t.__name__: self.count(t) for t in MODEL_FOR},
        }
