"""Catalog service tests: single-record maintenance against the SQL repository."""

from datetime import datetime

import pytest

from shopledger.entities import DEFAULT_EXPENSE_CATEGORY, Size
from shopledger.services import reporting_service
from shopledger.services.ledger_service import LedgerError, PaymentTerms, SaleInput
from shopledger.services.repository import RecordNotFoundError
from shopledger.validation import ValidationError


class TestProducts:
    def test_add_product_defaults(self, shop):
        product = shop.catalog.add_product({"name": "Linen Shirt", "purchase_price_cents": 800, "sale_price_cents": 1300})

        assert product.variants == ()
        assert product.category == ""
        assert shop.store.get_product(product.id) == product

    def test_update_merges_fields(self, shop, make_product):
        product = make_product()

        updated = shop.catalog.update_product(product.id, {
            "sale_price_cents": 1800,
            "variants": [{"size": "L", "color": "White", "quantity": 4}],
        })

        assert updated.name == product.name
        assert updated.sale_price_cents == 1800
        assert updated.find_variant(Size.L, "White").quantity == 4
        assert shop.store.get_product(product.id) == updated

    def test_duplicate_variants_rejected(self, shop):
        with pytest.raises(ValidationError):
            shop.catalog.add_product({
                "name": "Denim Jacket",
                "purchase_price_cents": 2000,
                "sale_price_cents": 3200,
                "variants": [
                    {"size": "M", "color": "Blue", "quantity": 1},
                    {"size": "M", "color": "Blue", "quantity": 2},
                ],
            })
        assert shop.store.snapshot().products == {}

    def test_negative_stock_rejected(self, shop, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            shop.catalog.update_product(product.id, {"variants": [{"size": "M", "color": "Blue", "quantity": -1}]})

    def test_unknown_fields_rejected(self, shop, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            shop.catalog.update_product(product.id, {"id": "other"})

    def test_delete(self, shop, make_product):
        product = make_product()
        shop.catalog.delete_product(product.id)

        assert shop.store.get_product(product.id) is None
        with pytest.raises(RecordNotFoundError):
            shop.catalog.delete_product(product.id)


class TestCustomers:
    def test_new_customer_starts_at_zero(self, shop):
        customer = shop.catalog.add_customer({"name": "Nusrat Jahan", "address": "Sylhet"})

        assert customer.total_spent_cents == 0
        assert customer.total_due_cents == 0
        assert customer.phone == ""

    def test_balances_not_editable(self, shop, make_customer):
        customer = make_customer()
        with pytest.raises(ValidationError):
            shop.catalog.update_customer(customer.id, {"total_due_cents": 0})
        with pytest.raises(ValidationError):
            shop.catalog.add_customer({"name": "X", "total_spent_cents": 10})

    def test_update_and_missing(self, shop, make_customer):
        customer = make_customer()
        updated = shop.catalog.update_customer(customer.id, {"phone": "01900000000"})

        assert updated.phone == "01900000000"
        assert updated.name == customer.name
        with pytest.raises(RecordNotFoundError):
            shop.catalog.update_customer("missing", {"phone": "1"})

    def test_delete_refused_while_sales_reference_customer(self, shop, make_customer, make_product):
        customer = make_customer()
        product = make_product()
        sale = shop.ledger.record_sale(SaleInput(
            customer_id=customer.id,
            product_id=product.id,
            size="M",
            color="Blue",
            quantity=1,
            unit_sale_price_cents=1500,
            payment=PaymentTerms.due(),
        ))

        with pytest.raises(LedgerError) as exc:
            shop.catalog.delete_customer(customer.id)
        assert exc.value.details == {"sale_count": 1, "total_due_cents": 1500}
        snapshot = shop.store.snapshot()
        assert reporting_service.total_outstanding_due(snapshot) == 1500
        assert reporting_service.outstanding_due_from_sales(snapshot) == 1500

        shop.ledger.reverse_sale(sale.id)
        shop.catalog.delete_customer(customer.id)
        assert shop.store.get_customer(customer.id) is None
        with pytest.raises(RecordNotFoundError):
            shop.catalog.delete_customer(customer.id)


class TestExpenses:
    def test_blank_category_becomes_other(self, shop):
        expense = shop.catalog.add_expense({"category": "  ", "amount_cents": 500})
        assert expense.category == DEFAULT_EXPENSE_CATEGORY

    def test_date_defaults_to_clock(self, shop):
        expense = shop.catalog.add_expense({"category": "Rent", "amount_cents": 500})
        assert isinstance(expense.date, datetime)

    def test_explicit_date_kept(self, shop):
        expense = shop.catalog.add_expense({
            "category": "Salary",
            "amount_cents": 10000,
            "date": "2024-03-01T10:00:00+06:00",
        })
        assert expense.date == datetime(2024, 3, 1, 4, 0)

    def test_amount_must_be_positive(self, shop):
        with pytest.raises(ValidationError):
            shop.catalog.add_expense({"category": "Rent", "amount_cents": 0})

    def test_update_and_delete(self, shop):
        expense = shop.catalog.add_expense({"category": "Rent", "amount_cents": 500})
        updated = shop.catalog.update_expense(expense.id, {"notes": "March"})
        assert updated.notes == "March"

        shop.catalog.delete_expense(expense.id)
        assert shop.store.get_expense(expense.id) is None


def test_shop_profile_update_persists(shop):
    profile = shop.catalog.update_shop_profile({"name": "Sylsas", "pin": "9999"})

    assert profile.name == "Sylsas"
    assert shop.store.shop_profile.pin == "9999"
    assert "pin" not in profile.to_dict()
