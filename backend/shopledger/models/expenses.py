from __future__ import annotations

from ..extensions import db
from ..entities import EXPENSE_FIELDS, expense_from_mapping
from .base import RecordMixin


class ExpenseModel(RecordMixin, db.Model):
    __tablename__ = "expenses"

    RECORD_FIELDS = EXPENSE_FIELDS
    RECORD_BUILDER = staticmethod(expense_from_mapping)

    id = db.Column(db.String(64), primary_key=True)
    category = db.Column(db.String(64), nullable=False, default="Other")
    amount_cents = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=False, default="")
