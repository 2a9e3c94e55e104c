# Overview: In-memory mirror of the persisted collections, replaced wholesale on every change.

"""
Entity Store

Holds the last delivered snapshot of products, customers, sales, expenses
and the shop profile. No business logic lives here.

- Each notification replaces one collection; a new immutable Snapshot object
  is swapped in under a lock, so readers always see a complete version.
- attach(repository) subscribes to every collection; detach() releases all
  subscriptions. attached() wraps both as a context manager.
- on_snapshot_changed(collection, handler) registers an observer and returns
  the callable that unregisters it.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping

from ..entities import Customer, Expense, Product, Sale, SHOP_PROFILE_ID, ShopProfile
from .error_state import ErrorState, SOURCE_SUBSCRIPTION
from .repository import (
    COLLECTIONS,
    CUSTOMERS,
    EXPENSES,
    PRODUCTS,
    SALES,
    SETTINGS,
    PersistenceError,
    Repository,
    Subscription,
)

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class Snapshot:
    products: Mapping[str, Product] = field(default_factory=lambda: _EMPTY)
    customers: Mapping[str, Customer] = field(default_factory=lambda: _EMPTY)
    sales: Mapping[str, Sale] = field(default_factory=lambda: _EMPTY)
    expenses: Mapping[str, Expense] = field(default_factory=lambda: _EMPTY)
    shop_profile: ShopProfile | None = None
    version: int = 0

    def sales_for_customer(self, customer_id: str) -> list[Sale]:
        return [s for s in self.sales.values() if s.customer_id == customer_id]


SnapshotListener = Callable[[Mapping[str, Any]], None]


class EntityStore:
    def __init__(self, default_profile: ShopProfile, errors: ErrorState | None = None):
        self._default_profile = default_profile
        self._errors = errors
        self._snapshot = Snapshot(shop_profile=default_profile)
        self._lock = threading.Lock()
        self._listeners: dict[str, list[SnapshotListener]] = {c: [] for c in COLLECTIONS}
        self._subscriptions: list[Subscription] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def shop_profile(self) -> ShopProfile:
        return self._snapshot.shop_profile or self._default_profile

    def get_product(self, product_id: str) -> Product | None:
        return self._snapshot.products.get(product_id)

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._snapshot.customers.get(customer_id)

    def get_sale(self, sale_id: str) -> Sale | None:
        return self._snapshot.sales.get(sale_id)

    def get_expense(self, expense_id: str) -> Expense | None:
        return self._snapshot.expenses.get(expense_id)

    # ------------------------------------------------------------------
    # Replacement
    # ------------------------------------------------------------------

    def replace_all(self, collection: str, records: Mapping[str, Any]) -> Snapshot:
        frozen = MappingProxyType(dict(records))
        with self._lock:
            current = self._snapshot
            if collection == PRODUCTS:
                updated = replace(current, products=frozen)
            elif collection == CUSTOMERS:
                updated = replace(current, customers=frozen)
            elif collection == SALES:
                updated = replace(current, sales=frozen)
            elif collection == EXPENSES:
                updated = replace(current, expenses=frozen)
            elif collection == SETTINGS:
                updated = replace(current, shop_profile=frozen.get(SHOP_PROFILE_ID, self._default_profile))
            else:
                raise ValueError(f"Unknown collection: {collection}")
            updated = replace(updated, version=current.version + 1)
            self._snapshot = updated
            listeners = list(self._listeners[collection])

        for listener in listeners:
            listener(frozen)
        return updated

    def on_snapshot_changed(self, collection: str, handler: SnapshotListener) -> Callable[[], None]:
        if collection not in self._listeners:
            raise ValueError(f"Unknown collection: {collection}")
        with self._lock:
            self._listeners[collection].append(handler)

        def _remove() -> None:
            with self._lock:
                if handler in self._listeners[collection]:
                    self._listeners[collection].remove(handler)

        return _remove

    # ------------------------------------------------------------------
    # Repository wiring
    # ------------------------------------------------------------------

    def attach(self, repository: Repository) -> None:
        if self._subscriptions:
            raise RuntimeError("EntityStore is already attached")
        for collection in COLLECTIONS:
            sub = repository.subscribe(
                collection,
                self._snapshot_handler(collection),
                self._handle_error,
            )
            self._subscriptions.append(sub)
        logger.info("Entity store attached to %s", type(repository).__name__)

    def detach(self) -> None:
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.close()

    @property
    def is_attached(self) -> bool:
        return bool(self._subscriptions)

    @contextmanager
    def attached(self, repository: Repository) -> Iterator["EntityStore"]:
        self.attach(repository)
        try:
            yield self
        finally:
            self.detach()

    def _snapshot_handler(self, collection: str) -> SnapshotListener:
        def _handle(records: Mapping[str, Any]) -> None:
            self.replace_all(collection, records)
            if self._errors is not None:
                self._errors.resolve(SOURCE_SUBSCRIPTION)
        return _handle

    def _handle_error(self, exc: PersistenceError) -> None:
        logger.error("Snapshot subscription error (%s): %s", exc.code, exc)
        if self._errors is not None:
            self._errors.record(exc, SOURCE_SUBSCRIPTION)
