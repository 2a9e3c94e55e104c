from __future__ import annotations

from ..extensions import db
from ..entities import SHOP_PROFILE_FIELDS, shop_profile_from_mapping
from .base import RecordMixin


class ShopProfileModel(RecordMixin, db.Model):
    """
    Shop owner profile (singleton row keyed "shop").

    pin is the shared secret of the login gate, stored as entered.
    """
    __tablename__ = "shop_profiles"

    RECORD_FIELDS = SHOP_PROFILE_FIELDS
    RECORD_BUILDER = staticmethod(shop_profile_from_mapping)

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False, default="")
    role = db.Column(db.String(64), nullable=False, default="")
    image = db.Column(db.Text, nullable=False, default="")
    pin = db.Column(db.String(32), nullable=False)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class Preference(db.Model):
    """Device-local preferences (language, login flag) as JSON values."""
    __tablename__ = "preferences"

    key = db.Column(db.String(64), primary_key=True)
    value_json = db.Column(db.JSON, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value_json}
