# backend/shopledger/routes/customers.py
"""
Customer routes, including receiving payments against a customer's dues.

Balances (total_spent_cents, total_due_cents) are read-only here; they move
only through sales, reversals and settlements.
"""
from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login, handle_service_errors
from ..models import CustomerModel
from ..services import reporting_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_login
def list_customers():
    """
    List customers.

    Query params:
    - q: str (optional) - case-insensitive match on name, or substring of phone
    """
    term = (request.args.get("q") or "").strip()
    customers = list(get_context().store.snapshot().customers.values())
    if term:
        lowered = term.lower()
        customers = [c for c in customers if lowered in c.name.lower() or term in c.phone]
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.post("")
@require_login
@handle_service_errors("create customer")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=CustomerModel, payload=payload, policy=CUSTOMER_POLICY, partial=False)

    customer = get_context().catalog.add_customer(patch)
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/<customer_id>")
@require_login
def get_customer_route(customer_id: str):
    customer = get_context().store.get_customer(customer_id)
    if customer is None:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify({"customer": customer.to_dict()})


@customers_bp.put("/<customer_id>")
@require_login
@handle_service_errors("update customer")
def update_customer_route(customer_id: str):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=CustomerModel, payload=payload, policy=CUSTOMER_POLICY, partial=True)

    customer = get_context().catalog.update_customer(customer_id, patch)
    return jsonify({"customer": customer.to_dict()})


@customers_bp.delete("/<customer_id>")
@require_login
@handle_service_errors("delete customer")
def delete_customer_route(customer_id: str):
    get_context().catalog.delete_customer(customer_id)
    return jsonify({"deleted": True, "id": customer_id})


@customers_bp.get("/<customer_id>/sales")
@require_login
def customer_sales_route(customer_id: str):
    snapshot = get_context().store.snapshot()
    if customer_id not in snapshot.customers:
        return jsonify({"error": "Customer not found"}), 404
    sales = reporting_service.customer_sales(snapshot, customer_id)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@customers_bp.post("/<customer_id>/payments")
@require_login
@handle_service_errors("receive customer payment")
def receive_payment_route(customer_id: str):
    """
    Receive a payment against the customer's dues, oldest sale first.

    Request body:
    {
        "amount_cents": 12000
    }
    """
    data = request.get_json(silent=True) or {}
    if "amount_cents" not in data:
        raise ValidationError("amount_cents required")

    settlement = get_context().ledger.settle_customer_payment(customer_id, data["amount_cents"])
    return jsonify({"settlement": settlement.to_dict()}), 201
