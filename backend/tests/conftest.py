"""
Pytest fixtures for shopledger backend tests.

Provides an app on a fresh in-memory database per test, the shop context,
record factories, and an in-memory repository double for failure injection.
"""

from datetime import datetime, timedelta

import pytest

from shopledger import create_app
from shopledger.context import get_context
from shopledger.entities import (
    CUSTOMER_FIELDS,
    EXPENSE_FIELDS,
    PRODUCT_FIELDS,
    SALE_FIELDS,
    SHOP_PROFILE_FIELDS,
    customer_from_mapping,
    expense_from_mapping,
    product_from_mapping,
    sale_from_mapping,
    shop_profile_from_mapping,
)
from shopledger.services.repository import (
    CUSTOMERS,
    EXPENSES,
    PRODUCTS,
    SALES,
    SETTINGS,
    COLLECTIONS,
    PersistenceError,
    RecordNotFoundError,
    Repository,
)

TEST_PIN = "4321"


@pytest.fixture(scope='function')
def app():
    """Create application for testing on its own in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'AUTO_CREATE_SCHEMA': True,
        'SHOP_DEFAULT_PIN': TEST_PIN,
        'GEMINI_API_KEY': '',
    })

    with app.app_context():
        yield app
        get_context().close()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def logged_in_client(client):
    """Test client past the PIN gate."""
    response = client.post('/api/auth/login', json={'pin': TEST_PIN})
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def shop(app):
    """The ShopContext built by create_app."""
    return get_context()


@pytest.fixture(scope='function')
def make_product(shop):
    """Factory: add a product through the catalog service."""
    def _make(name="Cotton Panjabi", purchase=1000, sale=1500, variants=None, category="Premium"):
        if variants is None:
            variants = [{"size": "M", "color": "Blue", "quantity": 10}]
        return shop.catalog.add_product({
            "name": name,
            "category": category,
            "purchase_price_cents": purchase,
            "sale_price_cents": sale,
            "variants": variants,
        })
    return _make


@pytest.fixture(scope='function')
def make_customer(shop):
    """Factory: add a customer through the catalog service."""
    def _make(name="Rahim Uddin", phone="01711000001"):
        return shop.catalog.add_customer({"name": name, "phone": phone})
    return _make


class SteppingClock:
    """Clock that advances a fixed step on every call."""

    def __init__(self, start=None, step=timedelta(minutes=1)):
        self.current = start or datetime(2024, 3, 1, 10, 0, 0)
        self.step = step

    def __call__(self):
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock():
    return SteppingClock()


_BUILDERS = {
    PRODUCTS: (PRODUCT_FIELDS, product_from_mapping),
    CUSTOMERS: (CUSTOMER_FIELDS, customer_from_mapping),
    SALES: (SALE_FIELDS, sale_from_mapping),
    EXPENSES: (EXPENSE_FIELDS, expense_from_mapping),
    SETTINGS: (SHOP_PROFILE_FIELDS, shop_profile_from_mapping),
}


class MemoryRepository(Repository):
    """
    Dict-backed repository.

    Set fail_next to a PersistenceError to make the next commit raise it;
    set fail_loads to make every load raise.
    """

    def __init__(self):
        super().__init__()
        self.data = {c: {} for c in COLLECTIONS}
        self.commits = 0
        self.fail_next = None
        self.fail_loads = None

    def load(self, collection):
        if self.fail_loads is not None:
            raise self.fail_loads
        return dict(self.data[collection])

    def commit(self, batch):
        if self.fail_next is not None:
            exc, self.fail_next = self.fail_next, None
            raise exc

        staged = {c: dict(records) for c, records in self.data.items()}
        for op in batch.ops:
            records = staged[op.collection]
            if op.kind == "put":
                records[op.record_id] = op.payload
            elif op.kind == "patch":
                current = records.get(op.record_id)
                if current is None:
                    raise RecordNotFoundError(op.collection, op.record_id)
                fields, builder = _BUILDERS[op.collection]
                merged = {name: getattr(current, name) for name in fields}
                merged.update(op.payload)
                records[op.record_id] = builder(merged)
            elif op.kind == "delete":
                records.pop(op.record_id, None)
        self.data = staged
        self.commits += 1


@pytest.fixture
def memory_repo():
    return MemoryRepository()


@pytest.fixture
def persistence_error():
    def _make(message="database is locked", code="unavailable"):
        return PersistenceError(message, code=code)
    return _make
