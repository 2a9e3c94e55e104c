# Overview: Shared mapping between ledger entities and their table rows.

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from ..entities import StockVariant


def to_column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], StockVariant):
        return [v.to_dict() for v in value]
    if isinstance(value, tuple):
        return list(value)
    return value


class RecordMixin:
    """
    Rows store entity fields one-to-one; the entity builder re-validates on read.

    Subclasses set RECORD_FIELDS (entity field names, identical to column keys)
    and RECORD_BUILDER (the entity's *_from_mapping function).
    """
    RECORD_FIELDS = ()
    RECORD_BUILDER = None

    def to_record(self):
        builder = type(self).RECORD_BUILDER
        return builder({name: getattr(self, name) for name in self.RECORD_FIELDS})

    def apply_fields(self, fields: Mapping[str, Any]) -> None:
        for name, value in fields.items():
            if name not in self.RECORD_FIELDS:
                raise KeyError(f"{type(self).__name__} has no field {name!r}")
            setattr(self, name, to_column_value(value))

    @classmethod
    def from_record(cls, record) -> "RecordMixin":
        row = cls()
        row.apply_fields({name: getattr(record, name) for name in cls.RECORD_FIELDS})
        return row
