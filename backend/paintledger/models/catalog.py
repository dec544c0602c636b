from __future__ import annotations

from ..extensions import db


class CustomerModel(db.Model):
    """
    Customer master data.

    classification is one of institution / store / individual.
    discount_percentage is informational: it is not applied automatically to
    sales, the invoice carries its own discount_amount.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    classification = db.Column(db.String(32), nullable=False, index=True)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"


class ProductModel(db.Model):
    """
    Product master data.

    stock is a stored, mutable on-hand count. Sale and return line items
    adjust it with single UPDATE statements (see SqlStore.adjust_stock), so
    concurrent adjustments never lose an update. It may go negative:
    overselling is accepted.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    # Paint color code or production batch label
    color_or_batch = db.Column(db.String(128), nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"
