# Overview: Shared JSON helpers for the API blueprints.

from flask import current_app, jsonify, request

from ..errors import ConcurrencyConflict, LedgerError, PersistenceError, ValidationError
from ..validation import require_int


def ledger_error_response(exc: LedgerError):
    """Map a LedgerError to its JSON body and status."""
    if isinstance(exc, PersistenceError):
        current_app.logger.error("Storage failure on %s %s: %s", request.method, request.path, exc.message)
    elif isinstance(exc, ConcurrencyConflict):
        current_app.logger.warning("Concurrency conflict on %s %s: %s", request.method, request.path, exc.message)
    return jsonify(exc.to_dict()), exc.http_status


def internal_error_response():
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def business_id_arg(data: dict | None = None) -> int:
    """business_id from the JSON body or the query string."""
    value = None
    if data is not None:
        value = data.get("business_id")
    if value is None:
        value = request.args.get("business_id")
    if value is None:
        raise ValidationError("business_id is required")
    return require_int(value, "business_id", minimum=1)


def int_arg(name: str, *, minimum: int | None = None) -> int | None:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return require_int(value, name, minimum=minimum)


def bool_arg(name: str, default: bool) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
