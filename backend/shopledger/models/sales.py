from __future__ import annotations

from ..extensions import db
from ..entities import SALE_FIELDS, sale_from_mapping
from .base import RecordMixin


class SaleModel(RecordMixin, db.Model):
    """
    Single-line sale of one product variant to one customer.

    customer_name and product_name are a snapshot taken at sale time and are
    never rewritten when the customer or product is renamed.
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Oldest-first settlement walks a customer's sales by date
        db.Index("ix_sales_customer_date", "customer_id", "date"),
        db.Index("ix_sales_date", "date"),
    )

    RECORD_FIELDS = SALE_FIELDS
    RECORD_BUILDER = staticmethod(sale_from_mapping)

    id = db.Column(db.String(64), primary_key=True)
    customer_id = db.Column(db.String(64), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(8), nullable=False)
    color = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # All amounts in cents
    sale_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    due_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    profit_cents = db.Column(db.Integer, nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, index=True)  # Full Paid, Partial Paid, Due
