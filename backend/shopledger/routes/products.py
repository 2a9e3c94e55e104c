# backend/shopledger/routes/products.py
"""
Product and stock routes.

Stock levels live in each product's variants; sales move them through the
ledger service, edits here set them directly (restocking).
"""
from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login, handle_service_errors
from ..models import ProductModel
from ..services import reporting_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_amounts

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "image", "purchase_price_cents", "sale_price_cents", "variants"},
    required_on_create={"name", "purchase_price_cents", "sale_price_cents"},
)

PRICE_FIELDS = ("purchase_price_cents", "sale_price_cents")

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_login
def list_products():
    """
    List products.

    Query params:
    - q: str (optional) - case-insensitive match on name or category
    """
    term = (request.args.get("q") or "").strip().lower()
    products = list(get_context().store.snapshot().products.values())
    if term:
        products = [p for p in products if term in p.name.lower() or term in p.category.lower()]
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/low-stock")
@require_login
def low_stock_route():
    context = get_context()
    threshold = context.low_stock_threshold
    if "threshold" in request.args:
        threshold = request.args.get("threshold", type=int)
        if threshold is None or threshold < 1:
            return jsonify({"error": "threshold must be a positive integer"}), 400
    products = reporting_service.low_stock(context.store.snapshot(), threshold)
    return jsonify({"threshold": threshold, "items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@require_login
@handle_service_errors("create product")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ProductModel, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_amounts(patch, PRICE_FIELDS)

    product = get_context().catalog.add_product(patch)
    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("/<product_id>")
@require_login
def get_product_route(product_id: str):
    product = get_context().store.get_product(product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict()})


@products_bp.put("/<product_id>")
@require_login
@handle_service_errors("update product")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ProductModel, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_amounts(patch, PRICE_FIELDS)

    product = get_context().catalog.update_product(product_id, patch)
    return jsonify({"product": product.to_dict()})


@products_bp.delete("/<product_id>")
@require_login
@handle_service_errors("delete product")
def delete_product_route(product_id: str):
    get_context().catalog.delete_product(product_id)
    return jsonify({"deleted": True, "id": product_id})
