# backend/shopledger/routes/auth.py
"""PIN login gate routes."""

from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import handle_service_errors

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@handle_service_errors("log in")
def login_route():
    """
    Open the gate with the shop PIN.

    Request body:
    {
        "pin": "1234"
    }
    """
    data = request.get_json(silent=True) or {}
    pin = data.get("pin")

    if pin is None or str(pin).strip() == "":
        return jsonify({"error": "pin required"}), 400

    context = get_context()
    if not context.gate.login(str(pin).strip()):
        return jsonify({"error": "Invalid PIN"}), 401

    return jsonify({
        "logged_in": True,
        "profile": context.store.shop_profile.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@handle_service_errors("log out")
def logout_route():
    get_context().gate.logout()
    return jsonify({"logged_in": False}), 200


@auth_bp.get("/status")
def status_route():
    context = get_context()
    return jsonify({
        "logged_in": context.gate.is_logged_in,
        "language": context.preferences.language,
    }), 200
