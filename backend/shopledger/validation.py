# Overview: Request payload validation against table metadata, and strict money coercion.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String, Text

from .time_utils import parse_iso_datetime

# 9,999,999.99 in the shop currency; caps a single price, payment or expense
MAX_AMOUNT_CENTS = 999_999_999

_PLAIN_INTEGER = re.compile(r"^[+-]?\d+$")


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may send for one table.

    - writable_fields: accepted keys; anything else is rejected outright
    - required_on_create: keys that must be present when partial=False
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def coerce_integer(key: str, value: Any) -> int:
    """
    Accept ints and plain digit strings only.

    Floats, bools, "12.5" and "1e3" are rejected so that money never passes
    through a binary fraction.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if isinstance(value, str) and _PLAIN_INTEGER.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{key} must be an integer")


def coerce_amount(key: str, value: Any, *, allow_zero: bool = True) -> int:
    """Integer cents in [0, MAX_AMOUNT_CENTS], or (0, MAX_AMOUNT_CENTS] with allow_zero=False."""
    amount = coerce_integer(key, value)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{key} must be {'>= 0' if allow_zero else '> 0'}")
    if amount > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_CENTS}")
    return amount


def coerce_balance(key: str, value: Any) -> int:
    """Running total in cents; non-negative with no upper bound."""
    amount = coerce_integer(key, value)
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    return amount


def _coerce_column(column, value: Any) -> Any:
    coltype = column.type

    if isinstance(coltype, Integer):
        return coerce_integer(column.key, value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        parsed = None
        if isinstance(value, str):
            try:
                parsed = parse_iso_datetime(value)
            except ValueError:
                parsed = None
        if parsed is None:
            raise ValidationError(f"{column.key} must be an ISO-8601 datetime")
        return parsed

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValidationError(f"{column.key} must be a string")
        text = str(value).strip()
        if isinstance(coltype, String) and coltype.length and len(text) > coltype.length:
            raise ValidationError(f"{column.key} exceeds max length {coltype.length}")
        return text

    # JSON columns (product variants) are checked by the entity builders
    return value


def validate_payload(*, model, payload: Any, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Clean an incoming JSON object into a patch for `model`.

    partial=False enforces policy.required_on_create (create); partial=True
    only checks the keys that were sent (update). Null is accepted only for
    nullable columns.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    disallowed = sorted(k for k in payload if k not in policy.writable_fields)
    if disallowed:
        raise ValidationError(f"Field not allowed: {', '.join(disallowed)}")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}
    for key, raw in payload.items():
        column = columns.get(key)
        if column is None:
            raise ValidationError(f"Unknown field: {key}")
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue
        patch[key] = _coerce_column(column, raw)
    return patch


def enforce_rules_amounts(patch: dict, fields: tuple[str, ...]) -> None:
    """Money fields present in the patch must be non-negative cents within range."""
    for name in fields:
        if patch.get(name) is not None:
            patch[name] = coerce_amount(name, patch[name])
