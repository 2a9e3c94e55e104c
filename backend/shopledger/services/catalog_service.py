# Overview: Single-record maintenance of products, customers, expenses and the shop profile.

"""
Catalog Service

Plain create/update/delete of one record at a time. Nothing here crosses
entities; stock movements caused by sales and balance changes belong to the
ledger service.

- Customer balances (total_spent_cents / total_due_cents) are not editable
  here; new customers start at zero.
- A customer is deleted only while no sale references them, so the two
  outstanding-due totals keep agreeing.
- Updates merge the given fields into the current record and rebuild it
  through the entity builder, so an update can never produce a partial record.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from ..entities import (
    CUSTOMER_FIELDS,
    EXPENSE_FIELDS,
    PRODUCT_FIELDS,
    SHOP_PROFILE_FIELDS,
    SHOP_PROFILE_ID,
    Customer,
    Expense,
    Product,
    ShopProfile,
    customer_from_mapping,
    expense_from_mapping,
    new_id,
    product_from_mapping,
    shop_profile_from_mapping,
)
from ..time_utils import utcnow
from ..validation import ValidationError
from .entity_store import EntityStore
from .error_state import ErrorState, tracked_batch
from .ledger_service import LedgerError
from .repository import CUSTOMERS, EXPENSES, PRODUCTS, SETTINGS, RecordNotFoundError, Repository

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "category", "image", "purchase_price_cents", "sale_price_cents", "variants"}
CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "address"}
EXPENSE_MUTABLE_FIELDS = {"category", "amount_cents", "date", "notes"}
SHOP_PROFILE_MUTABLE_FIELDS = set(SHOP_PROFILE_FIELDS)


def _fields_of(record: Any, names: tuple[str, ...]) -> dict:
    return {name: getattr(record, name) for name in names}


def _reject_unknown(fields: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = sorted(k for k in fields if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")


class CatalogService:
    def __init__(
        self,
        store: EntityStore,
        repository: Repository,
        *,
        errors: ErrorState | None = None,
        clock: Callable[[], Any] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self._store = store
        self._repository = repository
        self._errors = errors
        self._clock = clock
        self._id_factory = id_factory

    def _put(self, collection: str, record_id: str, record: Any) -> None:
        with tracked_batch(self._repository, self._errors) as batch:
            batch.put(collection, record_id, record)

    def _delete(self, collection: str, record_id: str) -> None:
        with tracked_batch(self._repository, self._errors) as batch:
            batch.delete(collection, record_id)

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def add_product(self, fields: Mapping[str, Any]) -> Product:
        _reject_unknown(fields, PRODUCT_MUTABLE_FIELDS)
        data = {"category": "", "image": "", "variants": [], **fields, "id": self._id_factory()}
        product = product_from_mapping(data)
        self._put(PRODUCTS, product.id, product)
        logger.info("Added product %s (%s)", product.id, product.name)
        return product

    def update_product(self, product_id: str, fields: Mapping[str, Any]) -> Product:
        _reject_unknown(fields, PRODUCT_MUTABLE_FIELDS)
        current = self._store.get_product(product_id)
        if current is None:
            raise RecordNotFoundError(PRODUCTS, product_id)
        product = product_from_mapping({**_fields_of(current, PRODUCT_FIELDS), **fields})
        self._put(PRODUCTS, product.id, product)
        return product

    def delete_product(self, product_id: str) -> None:
        if self._store.get_product(product_id) is None:
            raise RecordNotFoundError(PRODUCTS, product_id)
        self._delete(PRODUCTS, product_id)
        logger.info("Deleted product %s", product_id)

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    def add_customer(self, fields: Mapping[str, Any]) -> Customer:
        _reject_unknown(fields, CUSTOMER_MUTABLE_FIELDS)
        data = {
            "phone": "",
            "address": "",
            **fields,
            "id": self._id_factory(),
            "total_spent_cents": 0,
            "total_due_cents": 0,
        }
        customer = customer_from_mapping(data)
        self._put(CUSTOMERS, customer.id, customer)
        logger.info("Added customer %s (%s)", customer.id, customer.name)
        return customer

    def update_customer(self, customer_id: str, fields: Mapping[str, Any]) -> Customer:
        _reject_unknown(fields, CUSTOMER_MUTABLE_FIELDS)
        current = self._store.get_customer(customer_id)
        if current is None:
            raise RecordNotFoundError(CUSTOMERS, customer_id)
        customer = customer_from_mapping({**_fields_of(current, CUSTOMER_FIELDS), **fields})
        self._put(CUSTOMERS, customer.id, customer)
        return customer

    def delete_customer(self, customer_id: str) -> None:
        """Only customers with no sales and nothing due can be removed."""
        customer = self._store.get_customer(customer_id)
        if customer is None:
            raise RecordNotFoundError(CUSTOMERS, customer_id)
        sale_count = len(self._store.snapshot().sales_for_customer(customer_id))
        if sale_count or customer.total_due_cents > 0:
            raise LedgerError(
                "Customer has sales on record and cannot be deleted",
                details={"sale_count": sale_count, "total_due_cents": customer.total_due_cents},
            )
        self._delete(CUSTOMERS, customer_id)
        logger.info("Deleted customer %s", customer_id)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def add_expense(self, fields: Mapping[str, Any]) -> Expense:
        _reject_unknown(fields, EXPENSE_MUTABLE_FIELDS)
        data = {"category": "", "notes": "", **fields, "id": self._id_factory()}
        if data.get("date") is None:
            data["date"] = self._clock()
        expense = expense_from_mapping(data)
        self._put(EXPENSES, expense.id, expense)
        logger.info("Added expense %s (%s %d)", expense.id, expense.category, expense.amount_cents)
        return expense

    def update_expense(self, expense_id: str, fields: Mapping[str, Any]) -> Expense:
        _reject_unknown(fields, EXPENSE_MUTABLE_FIELDS)
        current = self._store.get_expense(expense_id)
        if current is None:
            raise RecordNotFoundError(EXPENSES, expense_id)
        expense = expense_from_mapping({**_fields_of(current, EXPENSE_FIELDS), **fields})
        self._put(EXPENSES, expense.id, expense)
        return expense

    def delete_expense(self, expense_id: str) -> None:
        if self._store.get_expense(expense_id) is None:
            raise RecordNotFoundError(EXPENSES, expense_id)
        self._delete(EXPENSES, expense_id)

    # =========================================================================
    # SHOP PROFILE
    # =========================================================================

    def update_shop_profile(self, fields: Mapping[str, Any]) -> ShopProfile:
        _reject_unknown(fields, SHOP_PROFILE_MUTABLE_FIELDS)
        current = self._store.shop_profile
        profile = shop_profile_from_mapping({**_fields_of(current, SHOP_PROFILE_FIELDS), **fields})
        self._put(SETTINGS, SHOP_PROFILE_ID, profile)
        logger.info("Updated shop profile")
        return profile
