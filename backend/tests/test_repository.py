"""SQL repository tests: snapshots, batches, ordering and error classification."""

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from shopledger.entities import Size, build_expense
from shopledger.models import ProductModel
from shopledger.services.repository import (
    CUSTOMERS,
    EXPENSES,
    PRODUCTS,
    PersistenceError,
    PersistencePermissionError,
    RecordNotFoundError,
    SqlRepository,
    WriteBatch,
    classify_db_error,
)
from shopledger.extensions import db
from shopledger.validation import ValidationError


def test_product_round_trips_through_table(shop, make_product):
    product = make_product(variants=[
        {"size": "M", "color": "Blue", "quantity": 3},
        {"size": "XL", "color": "Black", "quantity": 0},
    ])

    loaded = shop.repository.load(PRODUCTS)[product.id]

    assert loaded == product
    assert loaded.find_variant(Size.XL, "Black").quantity == 0


def test_subscribe_delivers_immediately_and_after_commit(shop, make_customer):
    deliveries = []
    sub = shop.repository.subscribe(CUSTOMERS, lambda records: deliveries.append(sorted(records)))
    assert deliveries == [[]]

    customer = make_customer()
    assert deliveries[-1] == [customer.id]

    sub.close()
    make_customer(name="Nusrat")
    assert len(deliveries) == 2


def test_batch_notifies_each_collection_once(shop, make_product, make_customer):
    product = make_product()
    customer = make_customer()
    calls = {PRODUCTS: 0, CUSTOMERS: 0}

    def counter(collection):
        def _count(records):
            calls[collection] += 1
        return _count

    with shop.repository.subscribe(PRODUCTS, counter(PRODUCTS)), shop.repository.subscribe(CUSTOMERS, counter(CUSTOMERS)):
        with shop.repository.batch() as batch:
            batch.patch(PRODUCTS, product.id, {"name": "Linen Shirt"})
            batch.patch(PRODUCTS, product.id, {"category": "Casual"})
            batch.patch(CUSTOMERS, customer.id, {"phone": "01800000000"})

    # One delivery on subscribe, one after the commit
    assert calls == {PRODUCTS: 2, CUSTOMERS: 2}
    assert shop.store.get_product(product.id).category == "Casual"


def test_empty_batch_commits_nothing(shop):
    version = shop.store.snapshot().version
    with shop.repository.batch():
        pass
    assert shop.store.snapshot().version == version


def test_exception_inside_batch_body_writes_nothing(shop, make_product):
    product = make_product()

    with pytest.raises(RuntimeError):
        with shop.repository.batch() as batch:
            batch.patch(PRODUCTS, product.id, {"name": "Never saved"})
            raise RuntimeError("operator cancelled")

    assert shop.repository.load(PRODUCTS)[product.id].name == product.name


def test_invalid_patch_is_rolled_back(shop, make_product):
    product = make_product()

    with pytest.raises(ValidationError):
        shop.repository.patch(PRODUCTS, product.id, {"sale_price_cents": -5})

    assert shop.repository.load(PRODUCTS)[product.id].sale_price_cents == product.sale_price_cents


class _FailingOnRecord(SqlRepository):
    """Raises a non-database error when it reaches one record id."""

    def __init__(self, record_id):
        super().__init__()
        self.record_id = record_id

    def _apply(self, session, op):
        if op.record_id == self.record_id:
            raise RuntimeError("unexpected failure")
        super()._apply(session, op)


def test_unexpected_error_discards_flushed_writes(shop, make_product, make_customer):
    product = make_product()
    repository = _FailingOnRecord("explodes")

    with pytest.raises(RuntimeError):
        with repository.batch() as batch:
            batch.patch(PRODUCTS, product.id, {"name": "Half written"})
            batch.delete(CUSTOMERS, "explodes")

    # a later commit on the same session must not carry the flushed rename
    make_customer()
    assert shop.repository.load(PRODUCTS)[product.id].name == product.name


def test_patch_missing_record(shop):
    with pytest.raises(RecordNotFoundError) as exc:
        shop.repository.patch(CUSTOMERS, "missing", {"name": "Ghost"})
    assert exc.value.record_id == "missing"


def test_expenses_load_newest_first(shop):
    for eid, day in (("old", 1), ("new", 9), ("mid", 5)):
        shop.repository.put(EXPENSES, eid, build_expense(
            id=eid, category="Rent", amount_cents=100, date=datetime(2024, 3, day), notes="",
        ))

    assert list(shop.repository.load(EXPENSES)) == ["new", "mid", "old"]


def test_corrupt_row_surfaces_as_persistence_error(shop, make_product):
    product = make_product()
    row = db.session.get(ProductModel, product.id)
    row.variants = [{"size": "M", "color": "Blue", "quantity": -1}]
    db.session.commit()

    with pytest.raises(PersistenceError) as exc:
        shop.repository.load(PRODUCTS)
    assert exc.value.code == "invalid-record"


def test_write_batch_validates_ops():
    batch = WriteBatch()
    with pytest.raises(ValueError):
        batch.put("orders", "1", object())
    with pytest.raises(TypeError):
        batch.put(PRODUCTS, "1", object())
    with pytest.raises(ValueError):
        batch.patch(PRODUCTS, "1", {"id": "2"})
    assert batch.ops == []


def test_classify_db_error():
    denied = classify_db_error(OperationalError("UPDATE products", {}, Exception("attempt to write a readonly database")))
    other = classify_db_error(OperationalError("SELECT 1", {}, Exception("database is locked")))

    assert isinstance(denied, PersistencePermissionError)
    assert denied.code == "permission-denied"
    assert not isinstance(other, PersistencePermissionError)
    assert isinstance(other, PersistenceError)
