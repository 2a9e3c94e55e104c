from __future__ import annotations

from ..extensions import db
from ..entities import PRODUCT_FIELDS, product_from_mapping
from .base import RecordMixin


class ProductModel(RecordMixin, db.Model):
    """
    Product with its size/color variants.

    Variants are an ordered JSON list of {size, color, quantity}; uniqueness of
    (size, color) is enforced by the entity builder.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
    )

    RECORD_FIELDS = PRODUCT_FIELDS
    RECORD_BUILDER = staticmethod(product_from_mapping)

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False, default="")
    image = db.Column(db.Text, nullable=False, default="")

    # All amounts in cents
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    variants = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
