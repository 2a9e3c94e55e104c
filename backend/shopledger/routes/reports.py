# backend/shopledger/routes/reports.py
"""Dashboard and financial report routes. Read-only; computed from the current snapshot."""

from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

MAX_REPORT_DAYS = 366


@reports_bp.get("/dashboard")
@require_login
def dashboard_route():
    context = get_context()
    summary = reporting_service.dashboard_summary(
        context.store.snapshot(),
        context.today(),
        context.timezone,
        context.low_stock_threshold,
    )
    return jsonify(summary)


@reports_bp.get("/financial")
@require_login
def financial_route():
    """
    Profit / expense totals plus a per-day series.

    Query params:
    - days: int (optional, default 7, 1..366)
    """
    days = request.args.get("days", default=7, type=int)
    if days is None or days < 1 or days > MAX_REPORT_DAYS:
        return jsonify({"error": f"days must be between 1 and {MAX_REPORT_DAYS}"}), 400

    context = get_context()
    report = reporting_service.financial_report(
        context.store.snapshot(),
        context.today(),
        days,
        context.timezone,
    )
    return jsonify(report)
