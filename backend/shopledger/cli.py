# Overview: Flask CLI command groups for bootstrap, shop settings, demo data and reports.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
# - A running server reloads every table at the start of each request, so
#   changes made here show up on its next request.
#
# System bootstrap/repair:
# - python -m flask system init
#   Create missing tables and the default shop profile. Idempotent.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop profile:
# - python -m flask shop show
#   Print the shop profile (PIN hidden).
# - python -m flask shop set-pin --pin 4321
#   Change the login PIN.
# - python -m flask shop set-profile --name "My Shop" --phone "01700000000"
#   Update profile fields; omitted options are left unchanged.
#
# Demo data:
# - python -m flask demo seed
#   Add sample products and customers, and record a few sales through the ledger.
#
# Reports:
# - python -m flask reports summary [--days 7]
#   Print the dashboard figures and the per-day profit/expense series.

import click
from flask.cli import with_appcontext

from .context import get_context
from .extensions import db
from .services import reporting_service
from .services.ledger_service import LedgerError, PaymentTerms, SaleInput
from .services.repository import COLLECTIONS, SETTINGS, PersistenceError
from .validation import ValidationError


def _reload_store():
    context = get_context()
    context.repository.notify(list(COLLECTIONS))
    return context


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create missing tables and persist the default shop profile.

    Safe to run repeatedly; existing data is left alone.
    """
    click.echo("START Initializing shop ledger...")
    db.create_all()
    click.echo("PASS Tables ready")

    context = _reload_store()
    if context.repository.load(SETTINGS):
        click.echo("PASS Using existing shop profile")
    else:
        profile = context.catalog.update_shop_profile({})
        click.echo(f"PASS Created shop profile: {profile.name}")
        click.echo("WARN Default PIN in use; change it with `flask shop set-pin`")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.session.remove()
    db.drop_all()
    click.echo("BUILD  Creating tables...")
    db.create_all()
    _reload_store()
    click.echo("PASS Database reset complete")


# =============================================================================
# SHOP PROFILE
# =============================================================================

@click.group('shop')
def shop_group():
    """Shop profile commands."""


@shop_group.command('show')
@with_appcontext
def show_profile():
    """Print the shop profile."""
    profile = get_context().store.shop_profile
    for key, value in profile.to_dict().items():
        click.echo(f"{key:<8} {value}")


@shop_group.command('set-pin')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='New login PIN')
@with_appcontext
def set_pin(pin):
    """Change the login PIN."""
    try:
        get_context().catalog.update_shop_profile({"pin": pin})
    except (ValidationError, PersistenceError) as e:
        raise click.ClickException(str(e))
    click.echo("PASS PIN updated")


@shop_group.command('set-profile')
@click.option('--name', default=None)
@click.option('--phone', default=None)
@click.option('--role', default=None)
@click.option('--image', default=None, help='Image URL or data URI')
@with_appcontext
def set_profile(name, phone, role, image):
    """Update shop profile fields."""
    fields = {
        k: v for k, v in {"name": name, "phone": phone, "role": role, "image": image}.items()
        if v is not None
    }
    if not fields:
        raise click.UsageError("Nothing to update; pass at least one option")

    try:
        profile = get_context().catalog.update_shop_profile(fields)
    except (ValidationError, PersistenceError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Updated profile: {profile.name}")


# =============================================================================
# DEMO DATA
# =============================================================================

DEMO_PRODUCTS = [
    {
        "name": "Cotton Panjabi",
        "category": "Premium",
        "purchase_price_cents": 120000,
        "sale_price_cents": 180000,
        "variants": [
            {"size": "M", "color": "White", "quantity": 10},
            {"size": "L", "color": "White", "quantity": 8},
            {"size": "XL", "color": "Navy", "quantity": 3},
        ],
    },
    {
        "name": "Denim Jacket",
        "category": "Casual",
        "purchase_price_cents": 200000,
        "sale_price_cents": 320000,
        "variants": [
            {"size": "S", "color": "Blue", "quantity": 4},
            {"size": "M", "color": "Blue", "quantity": 6},
        ],
    },
    {
        "name": "Linen Shirt",
        "category": "Casual",
        "purchase_price_cents": 80000,
        "sale_price_cents": 130000,
        "variants": [
            {"size": "M", "color": "Beige", "quantity": 12},
            {"size": "L", "color": "Olive", "quantity": 2},
        ],
    },
]

DEMO_CUSTOMERS = [
    {"name": "Rahim Uddin", "phone": "01711000001", "address": "Dhanmondi, Dhaka"},
    {"name": "Nusrat Jahan", "phone": "01811000002", "address": "Zindabazar, Sylhet"},
]


@click.group('demo')
def demo_group():
    """Demo data commands."""


@demo_group.command('seed')
@with_appcontext
def seed_demo():
    """Add sample products, customers and sales."""
    context = get_context()

    try:
        products = [context.catalog.add_product(p) for p in DEMO_PRODUCTS]
        customers = [context.catalog.add_customer(c) for c in DEMO_CUSTOMERS]
        click.echo(f"PASS Added {len(products)} products, {len(customers)} customers")

        sales = [
            (customers[0], products[0], "M", "White", 2, PaymentTerms.full_paid()),
            (customers[0], products[1], "M", "Blue", 1, PaymentTerms.partial(200000)),
            (customers[1], products[2], "M", "Beige", 3, PaymentTerms.due()),
        ]
        for customer, product, size, color, qty, terms in sales:
            sale = context.ledger.record_sale(SaleInput(
                customer_id=customer.id,
                product_id=product.id,
                size=size,
                color=color,
                quantity=qty,
                unit_sale_price_cents=product.sale_price_cents,
                payment=terms,
            ))
            click.echo(f"  SALE {sale.quantity}x {sale.product_name} -> {sale.customer_name} ({sale.payment_status.value})")

        context.catalog.add_expense({"category": "Rent", "amount_cents": 500000, "notes": "Monthly rent"})
    except (ValidationError, LedgerError, PersistenceError) as e:
        raise click.ClickException(str(e))

    click.echo("PASS Demo data seeded")


# =============================================================================
# REPORTS
# =============================================================================

@click.group('reports')
def reports_group():
    """Read-only report commands."""


@reports_group.command('summary')
@click.option('--days', default=7, show_default=True, type=click.IntRange(1, 366))
@with_appcontext
def report_summary(days):
    """Print dashboard figures and the daily series."""
    context = get_context()
    snapshot = context.store.snapshot()
    summary = reporting_service.dashboard_summary(
        snapshot, context.today(), context.timezone, context.low_stock_threshold,
    )

    click.echo(f"Products:          {summary['product_count']}")
    click.echo(f"Customers:         {summary['customer_count']}")
    click.echo(f"Sales:             {summary['sale_count']}")
    click.echo(f"Today's revenue:   {_money(summary['todays_revenue_cents'])}")
    click.echo(f"Total profit:      {_money(summary['total_profit_cents'])}")
    click.echo(f"Total expense:     {_money(summary['total_expense_cents'])}")
    click.echo(f"Net income:        {_money(summary['net_income_cents'])}")
    click.echo(f"Stock valuation:   {_money(summary['stock_valuation_cents'])}")
    click.echo(f"Outstanding due:   {_money(summary['total_outstanding_due_cents'])}")
    click.echo(f"Low-stock items:   {summary['low_stock_count']}")

    click.echo(f"\nLast {days} days:")
    for row in reporting_service.daily_series(snapshot, days, context.today(), context.timezone):
        click.echo(f"  {row['label']:<7} profit {_money(row['profit_cents']):>12}  expense {_money(row['expense_cents']):>12}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shop_group)
    app.cli.add_command(demo_group)
    app.cli.add_command(reports_group)
