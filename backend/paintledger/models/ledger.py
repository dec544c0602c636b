from __future__ import annotations

from ..extensions import db


class CustomerBalanceModel(db.Model):
    """
    Derived customer balance: total_sales - total_payments - total_returns.

    One row per customer, overwritten on every recomputation. version_id
    turns two concurrent recomputations into a StaleDataError (retried)
    instead of a silent last-writer-wins.
    """
    __tablename__ = "customer_balances"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_customer_balances_customer"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, nullable=False)

    total_sales = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_payments = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_returns = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


class DocumentSequence(db.Model):
    """
    Atomic per-type, per-month document sequences.

    WHY: Invoice and return numbers are allocated from a dedicated counter
    instead of counting or parsing existing documents, so two concurrent
    creations can never be handed the same number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "period", name="uq_doc_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    # Calendar month the counter belongs to, "YYYYMM"
    period = db.Column(db.String(6), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
