# backend/shopledger/routes/assistant.py
"""Business insights assistant route."""

from flask import Blueprint, request, jsonify

from ..context import get_context
from ..decorators import require_login
from ..services.reporting_service import insights_snapshot

assistant_bp = Blueprint("assistant", __name__, url_prefix="/api/assistant")


@assistant_bp.post("/ask")
@require_login
def ask_route():
    """
    Ask the assistant about the shop's figures.

    Request body:
    {
        "query": "How can I increase profit?"
    }

    Always answers 200; an unreachable or unconfigured model yields a
    fallback message as the answer.
    """
    data = request.get_json(silent=True) or {}
    query = (data.get("query") or "").strip()
    if not query:
        return jsonify({"error": "query required"}), 400

    context = get_context()
    summary = insights_snapshot(context.store.snapshot(), context.low_stock_threshold)
    answer = context.insights.ask(summary, query, context.store.shop_profile.name)
    return jsonify({"answer": answer})
