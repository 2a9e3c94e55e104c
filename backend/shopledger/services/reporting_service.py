# Overview: Derived figures over an entity snapshot; pure functions, recomputed on every read.

from __future__ import annotations

from datetime import date, timedelta, timezone, tzinfo
from typing import Iterable

from ..entities import Product, Sale
from ..time_utils import local_date
from .entity_store import Snapshot

DEFAULT_LOW_STOCK_THRESHOLD = 5
RECENT_SALES_LIMIT = 5


def total_profit(snapshot: Snapshot) -> int:
    return sum(s.profit_cents for s in snapshot.sales.values())


def total_expense(snapshot: Snapshot) -> int:
    return sum(e.amount_cents for e in snapshot.expenses.values())


def net_income(snapshot: Snapshot) -> int:
    return total_profit(snapshot) - total_expense(snapshot)


def stock_units(product: Product) -> int:
    return product.total_units


def stock_valuation(snapshot: Snapshot) -> int:
    """Purchase cost of everything on hand."""
    return sum(p.purchase_price_cents * stock_units(p) for p in snapshot.products.values())


def todays_revenue(snapshot: Snapshot, today: date, tz: tzinfo = timezone.utc) -> int:
    return sum(
        s.total_amount_cents
        for s in snapshot.sales.values()
        if local_date(s.date, tz) == today
    )


def monthly_expense(snapshot: Snapshot, today: date, tz: tzinfo = timezone.utc) -> int:
    """Expenses dated in today's calendar month."""
    total = 0
    for expense in snapshot.expenses.values():
        day = local_date(expense.date, tz)
        if day.year == today.year and day.month == today.month:
            total += expense.amount_cents
    return total


def daily_series(snapshot: Snapshot, days: int, today: date, tz: tzinfo = timezone.utc) -> list[dict]:
    """
    Profit and expense per calendar day for the trailing `days` days.

    Oldest first, ending with `today`; days without activity are zero-filled.
    """
    if days < 1:
        raise ValueError("days must be >= 1")

    start = today - timedelta(days=days - 1)
    profit_by_day: dict[date, int] = {}
    expense_by_day: dict[date, int] = {}

    for sale in snapshot.sales.values():
        day = local_date(sale.date, tz)
        if start <= day <= today:
            profit_by_day[day] = profit_by_day.get(day, 0) + sale.profit_cents

    for expense in snapshot.expenses.values():
        day = local_date(expense.date, tz)
        if start <= day <= today:
            expense_by_day[day] = expense_by_day.get(day, 0) + expense.amount_cents

    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        series.append({
            "date": day.isoformat(),
            "label": f"{day.day} {day.strftime('%b')}",
            "profit_cents": profit_by_day.get(day, 0),
            "expense_cents": expense_by_day.get(day, 0),
        })
    return series


def low_stock(snapshot: Snapshot, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[Product]:
    return [
        p for p in snapshot.products.values()
        if any(v.quantity < threshold for v in p.variants)
    ]


def total_outstanding_due(snapshot: Snapshot) -> int:
    return sum(c.total_due_cents for c in snapshot.customers.values())


def outstanding_due_from_sales(snapshot: Snapshot) -> int:
    return sum(s.due_amount_cents for s in snapshot.sales.values())


def _newest_first(sales: Iterable[Sale]) -> list[Sale]:
    return sorted(sales, key=lambda s: (s.date, s.id), reverse=True)


def customer_sales(snapshot: Snapshot, customer_id: str) -> list[Sale]:
    return _newest_first(snapshot.sales_for_customer(customer_id))


def recent_sales(snapshot: Snapshot, limit: int = RECENT_SALES_LIMIT) -> list[Sale]:
    return _newest_first(snapshot.sales.values())[:limit]


def dashboard_summary(
    snapshot: Snapshot,
    today: date,
    tz: tzinfo = timezone.utc,
    threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> dict:
    return {
        "todays_revenue_cents": todays_revenue(snapshot, today, tz),
        "total_profit_cents": total_profit(snapshot),
        "total_expense_cents": total_expense(snapshot),
        "net_income_cents": net_income(snapshot),
        "stock_valuation_cents": stock_valuation(snapshot),
        "total_outstanding_due_cents": total_outstanding_due(snapshot),
        "monthly_expense_cents": monthly_expense(snapshot, today, tz),
        "low_stock_count": len(low_stock(snapshot, threshold)),
        "product_count": len(snapshot.products),
        "customer_count": len(snapshot.customers),
        "sale_count": len(snapshot.sales),
        "recent_sales": [s.to_dict() for s in recent_sales(snapshot)],
    }


def financial_report(snapshot: Snapshot, today: date, days: int = 7, tz: tzinfo = timezone.utc) -> dict:
    return {
        "total_profit_cents": total_profit(snapshot),
        "total_expense_cents": total_expense(snapshot),
        "net_income_cents": net_income(snapshot),
        "total_outstanding_due_cents": outstanding_due_from_sales(snapshot),
        "stock_valuation_cents": stock_valuation(snapshot),
        "series": daily_series(snapshot, days, today, tz),
    }


def insights_snapshot(snapshot: Snapshot, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> dict:
    """Read-only figures handed to the business insights assistant."""
    return {
        "product_count": len(snapshot.products),
        "sale_count": len(snapshot.sales),
        "total_expense_cents": total_expense(snapshot),
        "stock_valuation_cents": stock_valuation(snapshot),
        "low_stock_product_names": [p.name for p in low_stock(snapshot, threshold)],
        "recent_sales_summaries": [
            f"{s.quantity}x {s.product_name} for {s.total_amount_cents}"
            for s in recent_sales(snapshot)
        ],
        "total_profit_cents": total_profit(snapshot),
    }
