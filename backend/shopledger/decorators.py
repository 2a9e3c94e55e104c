# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, jsonify

from .context import get_context
from .services.ledger_service import LedgerError
from .services.repository import PersistenceError, PersistencePermissionError, RecordNotFoundError
from .validation import ValidationError


def require_login(f):
    """
    Require the operator to have passed the PIN gate.

    Returns 401 while the gate is closed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_context().gate.is_logged_in:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)

    return decorated_function


def handle_service_errors(action: str):
    """
    Map service exceptions to JSON responses.

    - ValidationError / LedgerError -> 400 with details (nothing was written)
    - RecordNotFoundError -> 404
    - PersistencePermissionError -> 403, PersistenceError -> 503, with the
      current error notice
    - anything else -> logged, 500
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except (ValidationError, LedgerError) as e:
                return jsonify({"error": str(e), "details": e.details}), 400
            except RecordNotFoundError as e:
                return jsonify({"error": str(e)}), 404
            except PersistenceError as e:
                current_app.logger.error("Failed to %s: %s", action, e)
                notice = get_context().errors.current
                status = 403 if isinstance(e, PersistencePermissionError) else 503
                return jsonify({
                    "error": notice.message if notice else str(e),
                    "code": e.code,
                }), status
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
