# backend/shopledger/routes/sales.py
"""Sales API routes; recording and reversing sales through the ledger."""

from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login, handle_service_errors
from ..entities import PaymentStatus
from ..services.ledger_service import PaymentTerms, SaleInput
from ..validation import ValidationError

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SALE_REQUIRED_FIELDS = ("customer_id", "product_id", "size", "color", "quantity", "unit_sale_price_cents")


def _payment_terms(data: dict) -> PaymentTerms:
    raw = data.get("payment_type", PaymentStatus.FULL_PAID.value)
    try:
        kind = PaymentStatus(raw)
    except ValueError:
        raise ValidationError(
            "Invalid payment_type",
            details={"allowed": [s.value for s in PaymentStatus]},
        )

    if kind == PaymentStatus.PARTIAL_PAID:
        if "amount_received_cents" not in data:
            raise ValidationError("amount_received_cents required for a partial payment")
        return PaymentTerms.partial(data["amount_received_cents"])
    if kind == PaymentStatus.DUE:
        return PaymentTerms.due()
    return PaymentTerms.full_paid()


@sales_bp.get("")
@require_login
def list_sales():
    """
    List sales, newest first.

    Query params:
    - customer_id: str (optional)
    """
    customer_id = request.args.get("customer_id")
    sales = list(get_context().store.snapshot().sales.values())
    if customer_id:
        sales = [s for s in sales if s.customer_id == customer_id]
    sales.sort(key=lambda s: (s.date, s.id), reverse=True)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.post("")
@require_login
@handle_service_errors("record sale")
def record_sale_route():
    """
    Record a sale of one product variant.

    Request body:
    {
        "customer_id": "...",
        "product_id": "...",
        "size": "M",
        "color": "Blue",
        "quantity": 2,
        "unit_sale_price_cents": 150000,
        "payment_type": "Partial Paid",
        "amount_received_cents": 100000
    }

    payment_type is one of "Full Paid" (default), "Partial Paid" or "Due".
    """
    data = request.get_json(silent=True) or {}

    missing = [f for f in SALE_REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

    sale = get_context().ledger.record_sale(SaleInput(
        customer_id=str(data["customer_id"]),
        product_id=str(data["product_id"]),
        size=str(data["size"]),
        color=str(data["color"]),
        quantity=data["quantity"],
        unit_sale_price_cents=data["unit_sale_price_cents"],
        payment=_payment_terms(data),
    ))
    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.get("/<sale_id>")
@require_login
def get_sale_route(sale_id: str):
    sale = get_context().store.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()})


@sales_bp.delete("/<sale_id>")
@require_login
@handle_service_errors("reverse sale")
def reverse_sale_route(sale_id: str):
    """
    Delete a sale, restoring stock and the customer's balances.

    refund_due_cents is what the customer already paid on the sale.
    """
    reversal = get_context().ledger.reverse_sale(sale_id)
    return jsonify(reversal.to_dict())
