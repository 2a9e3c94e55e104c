# backend/shopledger/routes/expenses.py
"""Expense routes."""

from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login, handle_service_errors
from ..entities import EXPENSE_CATEGORIES
from ..models import ExpenseModel
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_amounts

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "amount_cents", "date", "notes"},
    required_on_create={"amount_cents"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_login
def list_expenses():
    expenses = sorted(
        get_context().store.snapshot().expenses.values(),
        key=lambda e: (e.date, e.id),
        reverse=True,
    )
    return jsonify({
        "items": [e.to_dict() for e in expenses],
        "count": len(expenses),
        "categories": list(EXPENSE_CATEGORIES),
    })


@expenses_bp.post("")
@require_login
@handle_service_errors("add expense")
def create_expense_route():
    """
    Add an expense. date defaults to now; a blank category becomes "Other".

    Request body:
    {
        "category": "Rent",
        "amount_cents": 500000,
        "date": "2024-03-01T10:00:00Z",
        "notes": "March rent"
    }
    """
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ExpenseModel, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_rules_amounts(patch, ("amount_cents",))

    expense = get_context().catalog.add_expense(patch)
    return jsonify({"expense": expense.to_dict()}), 201


@expenses_bp.put("/<expense_id>")
@require_login
@handle_service_errors("update expense")
def update_expense_route(expense_id: str):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ExpenseModel, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_rules_amounts(patch, ("amount_cents",))

    expense = get_context().catalog.update_expense(expense_id, patch)
    return jsonify({"expense": expense.to_dict()})


@expenses_bp.delete("/<expense_id>")
@require_login
@handle_service_errors("delete expense")
def delete_expense_route(expense_id: str):
    get_context().catalog.delete_expense(expense_id)
    return jsonify({"deleted": True, "id": expense_id})
