"""CLI command tests via Flask's CLI runner."""

import pytest

from shopledger.services.repository import SETTINGS


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def test_system_init_persists_profile_once(runner, shop):
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "Created shop profile" in result.output
    assert shop.repository.load(SETTINGS)

    result = runner.invoke(args=["system", "init"])
    assert "Using existing shop profile" in result.output


def test_reset_db_requires_confirmation(runner, shop, make_product):
    make_product()

    result = runner.invoke(args=["system", "reset-db"], input="n\n")
    assert result.exit_code != 0
    assert len(shop.store.snapshot().products) == 1

    result = runner.invoke(args=["system", "reset-db", "--yes"])
    assert result.exit_code == 0, result.output
    assert shop.store.snapshot().products == {}


def test_set_pin_and_profile(runner, shop):
    result = runner.invoke(args=["shop", "set-pin", "--pin", "8080"])
    assert result.exit_code == 0, result.output
    assert shop.store.shop_profile.pin == "8080"

    result = runner.invoke(args=["shop", "set-profile", "--name", "Sylsas", "--phone", "01700000000"])
    assert result.exit_code == 0, result.output
    assert shop.store.shop_profile.name == "Sylsas"
    assert shop.store.shop_profile.pin == "8080"

    result = runner.invoke(args=["shop", "set-profile"])
    assert result.exit_code != 0

    result = runner.invoke(args=["shop", "show"])
    assert "Sylsas" in result.output
    assert "8080" not in result.output


def test_demo_seed_and_summary(runner, shop):
    result = runner.invoke(args=["demo", "seed"])
    assert result.exit_code == 0, result.output

    snapshot = shop.store.snapshot()
    assert len(snapshot.products) == 3
    assert len(snapshot.sales) == 3
    for customer in snapshot.customers.values():
        assert customer.total_due_cents == sum(s.due_amount_cents for s in snapshot.sales_for_customer(customer.id))

    result = runner.invoke(args=["reports", "summary", "--days", "3"])
    assert result.exit_code == 0, result.output
    assert "Sales:             3" in result.output
    assert "Last 3 days:" in result.output
