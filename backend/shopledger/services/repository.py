# Overview: Persistence boundary for the ledger; collection snapshots, writes and atomic batches.

"""
Repository

The ledger core only talks to persistence through this interface:

- subscribe(collection, on_snapshot, on_error) delivers the full collection
  (id -> record) right away and again after every committed change.
- put / patch / delete write a single record and commit.
- batch() groups writes into one transaction; subscribers are notified once,
  after commit. A failure anywhere in the batch rolls the whole batch back.

Sales and expenses snapshots are ordered by date, newest first.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..entities import Customer, Expense, Product, Sale, ShopProfile
from ..models import CustomerModel, ExpenseModel, ProductModel, SaleModel, ShopProfileModel
from ..validation import ValidationError

logger = logging.getLogger(__name__)


PRODUCTS = "products"
CUSTOMERS = "customers"
SALES = "sales"
EXPENSES = "expenses"
SETTINGS = "settings"

COLLECTIONS = (PRODUCTS, CUSTOMERS, SALES, EXPENSES, SETTINGS)

_MODELS = {
    PRODUCTS: ProductModel,
    CUSTOMERS: CustomerModel,
    SALES: SaleModel,
    EXPENSES: ExpenseModel,
    SETTINGS: ShopProfileModel,
}

_RECORD_TYPES = {
    PRODUCTS: Product,
    CUSTOMERS: Customer,
    SALES: Sale,
    EXPENSES: Expense,
    SETTINGS: ShopProfile,
}

_PERMISSION_MARKERS = (
    "permission denied",
    "readonly database",
    "read-only",
    "access denied",
    "insufficient privilege",
)


class PersistenceError(Exception):
    """Raised when a read or write against the store fails."""
    code = "persistence-error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code


class PersistencePermissionError(PersistenceError):
    """Store refused access; a configuration problem rather than a transient one."""
    code = "permission-denied"


class RecordNotFoundError(LookupError):
    """Raised when an id does not reference an existing record."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} record {record_id} not found")
        self.collection = collection
        self.record_id = record_id


def classify_db_error(exc: Exception) -> PersistenceError:
    text = str(getattr(exc, "orig", None) or exc).lower()
    if any(marker in text for marker in _PERMISSION_MARKERS):
        return PersistencePermissionError(str(exc))
    return PersistenceError(str(exc))


def _check_collection(collection: str) -> None:
    if collection not in _MODELS:
        raise ValueError(f"Unknown collection: {collection}")


SnapshotHandler = Callable[[Mapping[str, Any]], None]
ErrorHandler = Callable[[PersistenceError], None]


class Subscription:
    """Handle returned by subscribe(); close() stops delivery."""

    def __init__(self, repository: "Repository", collection: str, on_snapshot: SnapshotHandler, on_error: ErrorHandler | None):
        self._repository = repository
        self.collection = collection
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def close(self) -> None:
        if self.active:
            self.active = False
            self._repository._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(frozen=True)
class WriteOp:
    kind: str  # put, patch, delete
    collection: str
    record_id: str
    payload: Any = None


class WriteBatch:
    """Collects writes; the repository applies them together on commit."""

    def __init__(self) -> None:
        self.ops: list[WriteOp] = []

    def put(self, collection: str, record_id: str, record: Any) -> None:
        _check_collection(collection)
        expected = _RECORD_TYPES[collection]
        if not isinstance(record, expected):
            raise TypeError(f"{collection} expects {expected.__name__}, got {type(record).__name__}")
        self.ops.append(WriteOp("put", collection, record_id, record))

    def patch(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None:
        _check_collection(collection)
        if "id" in fields:
            raise ValueError("id cannot be patched")
        self.ops.append(WriteOp("patch", collection, record_id, dict(fields)))

    def delete(self, collection: str, record_id: str) -> None:
        _check_collection(collection)
        self.ops.append(WriteOp("delete", collection, record_id))

    @property
    def collections(self) -> list[str]:
        seen: list[str] = []
        for op in self.ops:
            if op.collection not in seen:
                seen.append(op.collection)
        return seen


class Repository(ABC):
    """Abstract persistence collaborator."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, collection: str, on_snapshot: SnapshotHandler, on_error: ErrorHandler | None = None) -> Subscription:
        _check_collection(collection)
        sub = Subscription(self, collection, on_snapshot, on_error)
        with self._lock:
            self._subscriptions.append(sub)
        self._deliver(collection, [sub])
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def _subscribers(self, collection: str) -> list[Subscription]:
        with self._lock:
            return [s for s in self._subscriptions if s.collection == collection and s.active]

    def notify(self, collections: list[str]) -> None:
        for collection in collections:
            subs = self._subscribers(collection)
            if subs:
                self._deliver(collection, subs)

    def _deliver(self, collection: str, subs: list[Subscription]) -> None:
        try:
            snapshot = self.load(collection)
        except PersistenceError as exc:
            logger.warning("Snapshot delivery failed for %s: %s", collection, exc)
            for sub in subs:
                if sub.on_error is not None:
                    sub.on_error(exc)
            return
        for sub in subs:
            sub.on_snapshot(snapshot)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, collection: str, record_id: str, record: Any) -> None:
        with self.batch() as batch:
            batch.put(collection, record_id, record)

    def patch(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None:
        with self.batch() as batch:
            batch.patch(collection, record_id, fields)

    def delete(self, collection: str, record_id: str) -> None:
        with self.batch() as batch:
            batch.delete(collection, record_id)

    @contextmanager
    def batch(self) -> Iterator[WriteBatch]:
        """
        Group writes into one atomic commit.

        Nothing is written if the body raises; subscribers of every touched
        collection are notified once after a successful commit.
        """
        batch = WriteBatch()
        yield batch
        if not batch.ops:
            return
        self.commit(batch)
        self.notify(batch.collections)

    @abstractmethod
    def load(self, collection: str) -> dict[str, Any]:
        """Full collection as an ordered id -> record mapping."""

    @abstractmethod
    def commit(self, batch: WriteBatch) -> None:
        """Apply every op in the batch atomically."""


class SqlRepository(Repository):
    """Repository over the Flask-SQLAlchemy session."""

    def __init__(self, session_factory: Callable[[], Any] | None = None):
        super().__init__()
        self._session_factory = session_factory or (lambda: db.session)

    @property
    def session(self):
        return self._session_factory()

    def load(self, collection: str) -> dict[str, Any]:
        _check_collection(collection)
        model = _MODELS[collection]
        query = self.session.query(model)
        if collection in (SALES, EXPENSES):
            query = query.order_by(model.date.desc(), model.id.asc())
        elif collection in (PRODUCTS, CUSTOMERS):
            query = query.order_by(model.name.asc(), model.id.asc())

        try:
            rows = query.all()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise classify_db_error(exc) from exc

        snapshot: dict[str, Any] = {}
        for row in rows:
            try:
                snapshot[row.id] = row.to_record()
            except ValidationError as exc:
                raise PersistenceError(f"Invalid {collection} record {row.id}: {exc}", code="invalid-record") from exc
        return snapshot

    def commit(self, batch: WriteBatch) -> None:
        session = self.session
        try:
            for op in batch.ops:
                self._apply(session, op)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Batch of %d writes rolled back: %s", len(batch.ops), exc)
            raise classify_db_error(exc) from exc
        except Exception:
            # Flushed ops must not ride along with the next commit on this session
            session.rollback()
            raise

    def _apply(self, session, op: WriteOp) -> None:
        model = _MODELS[op.collection]

        if op.kind == "put":
            row = session.get(model, op.record_id)
            if row is None:
                row = model.from_record(op.payload)
                row.id = op.record_id
                session.add(row)
            else:
                row.apply_fields({name: getattr(op.payload, name) for name in model.RECORD_FIELDS if name != "id"})

        elif op.kind == "patch":
            row = session.get(model, op.record_id)
            if row is None:
                raise RecordNotFoundError(op.collection, op.record_id)
            row.apply_fields(op.payload)
            # Re-run the entity builder so a patch cannot leave an invalid record behind
            row.to_record()

        elif op.kind == "delete":
            row = session.get(model, op.record_id)
            if row is not None:
                session.delete(row)

        session.flush()
