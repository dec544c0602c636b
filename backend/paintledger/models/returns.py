from __future__ import annotations

from ..extensions import db


class ReturnModel(db.Model):
    """
    Product return document.

    References the originating sale for traceability; the customer is copied
    onto the return so balances can be aggregated without joining sales.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.UniqueConstraint("return_number", name="uq_returns_return_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable return number (e.g., "RET-202405-0002")
    return_number = db.Column(db.String(32), nullable=False)
    sale_id = db.Column(db.Integer, nullable=False, index=True)
    customer_id = db.Column(db.Integer, nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    reason = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class ReturnItemModel(db.Model):
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
