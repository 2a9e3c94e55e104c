"""Two app instances on one database file, as with several workers or a CLI run."""

import pytest

from shopledger import create_app
from shopledger.context import get_context
from shopledger.extensions import db

from conftest import TEST_PIN


def _worker(path, **overrides):
    return create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{path}",
        'AUTO_CREATE_SCHEMA': True,
        'SHOP_DEFAULT_PIN': TEST_PIN,
        'GEMINI_API_KEY': '',
        **overrides,
    })


@pytest.fixture
def workers(tmp_path):
    path = tmp_path / "shop.sqlite3"
    apps = [_worker(path), _worker(path), _worker(path, REFRESH_ON_REQUEST=False)]
    yield apps
    for app in apps:
        with app.app_context():
            get_context().close()
            db.engine.dispose()


def _add_stock(app):
    with app.app_context():
        catalog = get_context().catalog
        product = catalog.add_product({
            "name": "Cotton Panjabi",
            "purchase_price_cents": 300,
            "sale_price_cents": 500,
            "variants": [{"size": "M", "color": "Blue", "quantity": 4}],
        })
        customer = catalog.add_customer({"name": "Nusrat"})
    return product, customer


def test_request_sees_records_written_by_another_worker(workers):
    writer, reader, _ = workers
    product, customer = _add_stock(writer)
    reader_store = reader.extensions["shopledger"].store
    assert reader_store.get_product(product.id) is None

    body = reader.test_client().get("/api/health").get_json()

    assert body["entity_store"]["in_sync"] is True
    assert body["entity_store"]["details"]["products"] == 1
    assert reader_store.get_product(product.id) == product
    assert reader_store.get_customer(customer.id) == customer


def test_sale_validates_against_stock_sold_by_another_worker(workers):
    writer, reader, _ = workers
    product, customer = _add_stock(writer)
    sale = {
        "customer_id": customer.id,
        "product_id": product.id,
        "size": "M",
        "color": "Blue",
        "quantity": 3,
        "unit_sale_price_cents": 500,
        "payment_type": "Due",
    }
    writer_client = writer.test_client()
    reader_client = reader.test_client()
    assert writer_client.post("/api/auth/login", json={"pin": TEST_PIN}).status_code == 200

    # login flag is shared through the preferences table
    assert reader_client.get("/api/auth/status").get_json()["logged_in"] is True
    assert writer_client.post("/api/sales", json=sale).status_code == 201

    response = reader_client.post("/api/sales", json=sale)

    assert response.status_code == 400
    assert response.get_json()["details"]["on_hand"] == 1
    body = reader_client.get(f"/api/customers/{customer.id}").get_json()
    assert body["customer"]["total_due_cents"] == 1500


def test_refresh_can_be_switched_off(workers):
    writer, _, pinned = workers
    product, _ = _add_stock(writer)

    body = pinned.test_client().get("/api/health").get_json()

    assert body["entity_store"]["in_sync"] is False
    assert pinned.extensions["shopledger"].store.get_product(product.id) is None
