from __future__ import annotations

from ..extensions import db
from ..entities import CUSTOMER_FIELDS, customer_from_mapping
from .base import RecordMixin


class CustomerModel(RecordMixin, db.Model):
    """
    Customer master data with denormalized running balances.

    total_due_cents must equal the sum of due_amount_cents over the
    customer's sales; only the ledger service moves the two balances.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        db.Index("ix_customers_phone", "phone"),
    )

    RECORD_FIELDS = CUSTOMER_FIELDS
    RECORD_BUILDER = staticmethod(customer_from_mapping)

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False, default="")
    address = db.Column(db.String(255), nullable=False, default="")

    # Denormalized aggregates (updated by the ledger service)
    total_spent_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_due_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
