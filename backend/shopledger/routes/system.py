# backend/shopledger/routes/system.py
"""
System health endpoint.

Reports whether the database answers, whether the entity store is subscribed
and in step with the tables, and the current error notice if any.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from ..context import get_context
from ..extensions import db
from ..models import CustomerModel, ExpenseModel, ProductModel, SaleModel
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

_COUNTED_TABLES = {
    "products": ProductModel,
    "customers": CustomerModel,
    "sales": SaleModel,
    "expenses": ExpenseModel,
}


def check_database_health() -> dict:
    """Row counts per ledger table, timed."""
    started = time.perf_counter()
    try:
        counts = {name: db.session.query(model).count() for name, model in _COUNTED_TABLES.items()}
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "error": "Database error",
        }
    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "details": counts,
    }


def check_entity_store_health(database: dict) -> dict:
    """The in-memory snapshot should hold exactly what the tables hold."""
    store = get_context().store
    snapshot = store.snapshot()
    held = {
        "products": len(snapshot.products),
        "customers": len(snapshot.customers),
        "sales": len(snapshot.sales),
        "expenses": len(snapshot.expenses),
    }
    in_sync = database.get("details") == held
    return {
        "status": "healthy" if store.is_attached and in_sync else "unhealthy",
        "attached": store.is_attached,
        "in_sync": in_sync,
        "version": snapshot.version,
        "details": held,
    }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    entity_store = check_entity_store_health(database)
    notice = get_context().errors.current

    healthy = database["status"] == "healthy" and entity_store["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "time": to_utc_z(utcnow()),
        "database": database,
        "entity_store": entity_store,
        "error": notice.to_dict() if notice else None,
    }), 200 if healthy else 503
