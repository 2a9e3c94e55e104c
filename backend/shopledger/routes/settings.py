# backend/shopledger/routes/settings.py
"""Shop profile, language preference and error notice routes."""

from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login, handle_service_errors
from ..models import ShopProfileModel
from ..validation import ModelValidationPolicy, ValidationError, validate_payload

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "role", "image", "pin"},
    required_on_create=set(),
)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/profile")
@require_login
def get_profile_route():
    return jsonify({"profile": get_context().store.shop_profile.to_dict()})


@settings_bp.put("/profile")
@require_login
@handle_service_errors("update shop profile")
def update_profile_route():
    """
    Update the shop profile. The PIN is accepted here but never returned.
    """
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ShopProfileModel, payload=payload, policy=PROFILE_POLICY, partial=True)

    profile = get_context().catalog.update_shop_profile(patch)
    return jsonify({"profile": profile.to_dict()})


@settings_bp.get("/language")
def get_language_route():
    return jsonify({"language": get_context().preferences.language})


@settings_bp.put("/language")
@handle_service_errors("set language")
def set_language_route():
    data = request.get_json(silent=True) or {}
    language = data.get("language")
    if not language:
        raise ValidationError("language required")

    get_context().preferences.set_language(str(language))
    return jsonify({"language": get_context().preferences.language})


@settings_bp.get("/error")
def get_error_route():
    notice = get_context().errors.current
    return jsonify({"error": notice.to_dict() if notice else None})


@settings_bp.delete("/error")
def dismiss_error_route():
    get_context().errors.clear()
    return jsonify({"error": None})
