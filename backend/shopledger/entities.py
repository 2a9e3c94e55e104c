# Overview: Immutable ledger entities and the builders that construct them.

"""
Ledger entities

Every entity is a frozen dataclass built through an explicit builder that
names every required field. Builders reject incomplete or invalid input with
ValidationError; an update is a new record (dataclasses.replace).

All money is integer cents. Timestamps are UTC-naive datetimes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from .time_utils import parse_iso_datetime, to_utc_z
from .validation import ValidationError, coerce_amount, coerce_balance, coerce_integer


class Size(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


class PaymentStatus(str, Enum):
    FULL_PAID = "Full Paid"
    PARTIAL_PAID = "Partial Paid"
    DUE = "Due"


EXPENSE_CATEGORIES = ("Rent", "Utility", "Salary", "Transport", "Marketing", "Tea/Snacks", "Other")
DEFAULT_EXPENSE_CATEGORY = "Other"

SHOP_PROFILE_ID = "shop"


def new_id() -> str:
    return uuid.uuid4().hex


def derive_payment_status(total_amount_cents: int, due_amount_cents: int) -> PaymentStatus:
    if due_amount_cents == 0:
        return PaymentStatus.FULL_PAID
    if due_amount_cents == total_amount_cents:
        return PaymentStatus.DUE
    return PaymentStatus.PARTIAL_PAID


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _text(key: str, value: Any, *, required: bool = True, max_length: int = 255) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{key} cannot be blank")
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value


def _identifier(key: str, value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    return _text(key, value, max_length=64)


def _timestamp(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return parse_iso_datetime(value.isoformat())
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _size(value: Any) -> Size:
    try:
        return Size(value)
    except ValueError:
        raise ValidationError(
            f"size must be one of {[s.value for s in Size]}",
            details={"size": value},
        )


def _require(data: Mapping[str, Any], fields: Iterable[str], entity: str) -> None:
    if not isinstance(data, Mapping):
        raise ValidationError(f"Invalid {entity} payload")
    missing = sorted(f for f in fields if f not in data)
    if missing:
        raise ValidationError(f"Missing required {entity} fields: {', '.join(missing)}")


# =============================================================================
# PRODUCT
# =============================================================================

@dataclass(frozen=True)
class StockVariant:
    size: Size
    color: str
    quantity: int

    @property
    def key(self) -> tuple[Size, str]:
        return (self.size, self.color)

    def to_dict(self) -> dict:
        return {"size": self.size.value, "color": self.color, "quantity": self.quantity}


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str
    image: str
    purchase_price_cents: int
    sale_price_cents: int
    variants: tuple[StockVariant, ...] = field(default_factory=tuple)

    def find_variant(self, size: Size | str, color: str) -> StockVariant | None:
        try:
            size = Size(size)
        except ValueError:
            return None
        for variant in self.variants:
            if variant.size == size and variant.color == color:
                return variant
        return None

    @property
    def total_units(self) -> int:
        return sum(v.quantity for v in self.variants)

    def adjust_variant(self, size: Size, color: str, delta: int) -> "Product":
        """
        Return a copy with one variant's quantity moved by delta, floored at 0.

        A missing variant is appended when delta is positive (stock coming back
        for a variant that was removed from the product meanwhile).
        """
        variants = []
        found = False
        for variant in self.variants:
            if variant.size == size and variant.color == color:
                variant = replace(variant, quantity=max(0, variant.quantity + delta))
                found = True
            variants.append(variant)
        if not found and delta > 0:
            variants.append(StockVariant(size=size, color=color, quantity=delta))
        return replace(self, variants=tuple(variants))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "image": self.image,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "variants": [v.to_dict() for v in self.variants],
            "total_units": self.total_units,
        }


def build_variant(*, size: Any, color: Any, quantity: Any) -> StockVariant:
    qty = coerce_integer("quantity", quantity)
    if qty < 0:
        raise ValidationError("variant quantity must be >= 0")
    return StockVariant(size=_size(size), color=_text("color", color, max_length=64), quantity=qty)


def build_variants(raw: Any) -> tuple[StockVariant, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("variants must be a list")

    variants: list[StockVariant] = []
    seen: set[tuple[Size, str]] = set()
    for item in raw:
        if isinstance(item, StockVariant):
            variant = item
        else:
            _require(item, ("size", "color", "quantity"), "variant")
            variant = build_variant(size=item["size"], color=item["color"], quantity=item["quantity"])
        if variant.key in seen:
            raise ValidationError(
                "Duplicate variant",
                details={"size": variant.size.value, "color": variant.color},
            )
        seen.add(variant.key)
        variants.append(variant)
    return tuple(variants)


def build_product(
    *,
    id: Any,
    name: Any,
    category: Any,
    image: Any,
    purchase_price_cents: Any,
    sale_price_cents: Any,
    variants: Any,
) -> Product:
    return Product(
        id=_identifier("id", id),
        name=_text("name", name),
        category=_text("category", category, required=False, max_length=128),
        image=_text("image", image, required=False, max_length=2048),
        purchase_price_cents=coerce_amount("purchase_price_cents", purchase_price_cents),
        sale_price_cents=coerce_amount("sale_price_cents", sale_price_cents),
        variants=build_variants(variants),
    )


PRODUCT_FIELDS = ("id", "name", "category", "image", "purchase_price_cents", "sale_price_cents", "variants")


def product_from_mapping(data: Mapping[str, Any]) -> Product:
    _require(data, PRODUCT_FIELDS, "product")
    return build_product(**{k: data[k] for k in PRODUCT_FIELDS})


# =============================================================================
# CUSTOMER
# =============================================================================

@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str
    address: str
    total_spent_cents: int
    total_due_cents: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "total_spent_cents": self.total_spent_cents,
            "total_due_cents": self.total_due_cents,
        }


def build_customer(
    *,
    id: Any,
    name: Any,
    phone: Any,
    address: Any,
    total_spent_cents: Any,
    total_due_cents: Any,
) -> Customer:
    return Customer(
        id=_identifier("id", id),
        name=_text("name", name),
        phone=_text("phone", phone, required=False, max_length=32),
        address=_text("address", address, required=False),
        total_spent_cents=coerce_balance("total_spent_cents", total_spent_cents),
        total_due_cents=coerce_balance("total_due_cents", total_due_cents),
    )


CUSTOMER_FIELDS = ("id", "name", "phone", "address", "total_spent_cents", "total_due_cents")


def customer_from_mapping(data: Mapping[str, Any]) -> Customer:
    _require(data, CUSTOMER_FIELDS, "customer")
    return build_customer(**{k: data[k] for k in CUSTOMER_FIELDS})


# =============================================================================
# SALE
# =============================================================================

@dataclass(frozen=True)
class Sale:
    id: str
    customer_id: str
    customer_name: str
    product_id: str
    product_name: str
    size: Size
    color: str
    quantity: int
    sale_price_cents: int
    total_amount_cents: int
    paid_amount_cents: int
    due_amount_cents: int
    profit_cents: int
    date: datetime
    payment_status: PaymentStatus

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "size": self.size.value,
            "color": self.color,
            "quantity": self.quantity,
            "sale_price_cents": self.sale_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "due_amount_cents": self.due_amount_cents,
            "profit_cents": self.profit_cents,
            "date": to_utc_z(self.date),
            "payment_status": self.payment_status.value,
        }


def build_sale(
    *,
    id: Any,
    customer_id: Any,
    customer_name: Any,
    product_id: Any,
    product_name: Any,
    size: Any,
    color: Any,
    quantity: Any,
    sale_price_cents: Any,
    total_amount_cents: Any,
    paid_amount_cents: Any,
    due_amount_cents: Any,
    profit_cents: Any,
    date: Any,
    payment_status: Any,
) -> Sale:
    qty = coerce_integer("quantity", quantity)
    if qty < 1:
        raise ValidationError("quantity must be >= 1")
    price = coerce_amount("sale_price_cents", sale_price_cents, allow_zero=False)
    total = coerce_amount("total_amount_cents", total_amount_cents)
    paid = coerce_amount("paid_amount_cents", paid_amount_cents)
    due = coerce_amount("due_amount_cents", due_amount_cents)

    if total != price * qty:
        raise ValidationError(
            "total_amount_cents must equal sale_price_cents * quantity",
            details={"total_amount_cents": total, "expected": price * qty},
        )
    if paid + due != total:
        raise ValidationError(
            "paid_amount_cents + due_amount_cents must equal total_amount_cents",
            details={"paid_amount_cents": paid, "due_amount_cents": due, "total_amount_cents": total},
        )

    try:
        status = PaymentStatus(payment_status)
    except ValueError:
        raise ValidationError(f"payment_status must be one of {[s.value for s in PaymentStatus]}")

    return Sale(
        id=_identifier("id", id),
        customer_id=_identifier("customer_id", customer_id),
        customer_name=_text("customer_name", customer_name),
        product_id=_identifier("product_id", product_id),
        product_name=_text("product_name", product_name),
        size=_size(size),
        color=_text("color", color, max_length=64),
        quantity=qty,
        sale_price_cents=price,
        total_amount_cents=total,
        paid_amount_cents=paid,
        due_amount_cents=due,
        profit_cents=coerce_integer("profit_cents", profit_cents),
        date=_timestamp("date", date),
        payment_status=status,
    )


SALE_FIELDS = (
    "id", "customer_id", "customer_name", "product_id", "product_name", "size", "color",
    "quantity", "sale_price_cents", "total_amount_cents", "paid_amount_cents",
    "due_amount_cents", "profit_cents", "date", "payment_status",
)


def sale_from_mapping(data: Mapping[str, Any]) -> Sale:
    _require(data, SALE_FIELDS, "sale")
    return build_sale(**{k: data[k] for k in SALE_FIELDS})


# =============================================================================
# EXPENSE
# =============================================================================

@dataclass(frozen=True)
class Expense:
    id: str
    category: str
    amount_cents: int
    date: datetime
    notes: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "date": to_utc_z(self.date),
            "notes": self.notes,
        }


def build_expense(*, id: Any, category: Any, amount_cents: Any, date: Any, notes: Any) -> Expense:
    return Expense(
        id=_identifier("id", id),
        category=_text("category", category, required=False, max_length=64) or DEFAULT_EXPENSE_CATEGORY,
        amount_cents=coerce_amount("amount_cents", amount_cents, allow_zero=False),
        date=_timestamp("date", date),
        notes=_text("notes", notes, required=False, max_length=1024),
    )


EXPENSE_FIELDS = ("id", "category", "amount_cents", "date", "notes")


def expense_from_mapping(data: Mapping[str, Any]) -> Expense:
    _require(data, EXPENSE_FIELDS, "expense")
    return build_expense(**{k: data[k] for k in EXPENSE_FIELDS})


# =============================================================================
# SHOP PROFILE
# =============================================================================

@dataclass(frozen=True)
class ShopProfile:
    name: str
    phone: str
    role: str
    image: str
    pin: str

    def to_dict(self, include_pin: bool = False) -> dict:
        data = {
            "name": self.name,
            "phone": self.phone,
            "role": self.role,
            "image": self.image,
        }
        if include_pin:
            data["pin"] = self.pin
        return data


def build_shop_profile(*, name: Any, phone: Any, role: Any, image: Any, pin: Any) -> ShopProfile:
    if isinstance(pin, int) and not isinstance(pin, bool):
        pin = str(pin)
    return ShopProfile(
        name=_text("name", name),
        phone=_text("phone", phone, required=False, max_length=32),
        role=_text("role", role, required=False, max_length=64),
        image=_text("image", image, required=False, max_length=2048),
        pin=_text("pin", pin, max_length=32),
    )


SHOP_PROFILE_FIELDS = ("name", "phone", "role", "image", "pin")


def shop_profile_from_mapping(data: Mapping[str, Any]) -> ShopProfile:
    _require(data, SHOP_PROFILE_FIELDS, "shop profile")
    return build_shop_profile(**{k: data[k] for k in SHOP_PROFILE_FIELDS})


def default_shop_profile(pin: str) -> ShopProfile:
    return ShopProfile(name="Shop Admin", phone="", role="Owner", image="", pin=pin)
