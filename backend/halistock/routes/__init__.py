# backend/halistock/routes/__init__.py
"""
Shared error mapping for the API blueprints.

Services raise the exceptions from validation.py; routes catch SERVICE_ERRORS
and hand them to error_response() so every endpoint answers the same way.
"""
from flask import jsonify

from ..validation import ConflictError, NotFoundError, StoreUnavailableError, ValidationError

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError, StoreUnavailableError)


def error_response(exc: Exception):
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 409
    if isinstance(exc, StoreUnavailableError):
        return jsonify({"error": "Store temporarily unavailable, retry later"}), 503
    raise exc


def require_id(payload: dict, key: str) -> int:
    """Positive integer id from a JSON body; ValidationError otherwise."""
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{key} must be a positive integer")
    return value


def pick(payload: dict, fields) -> dict:
    """Keyword arguments for a service call, limited to `fields`."""
    return {k: payload[k] for k in fields if k in payload}
