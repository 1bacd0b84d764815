# Overview: Flask API routes for receipts; JSON data and a plain-text printable layout.

from flask import Blueprint, Response, jsonify, request

from ..services import receipt_service
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError
from . import SERVICE_ERRORS, error_response


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


def _ids(payload: dict, key: str) -> list[int]:
    values = payload.get(key) or []
    if not isinstance(values, list) or any(isinstance(v, bool) or not isinstance(v, int) for v in values):
        raise ValidationError(f"{key} must be a list of integer ids")
    return values


def _build(payload: dict) -> dict:
    try:
        issued_at = parse_iso_datetime(payload.get("issued_at"))
    except (AttributeError, ValueError):
        raise ValidationError("issued_at must be an ISO-8601 datetime")
    return receipt_service.build_receipt(
        transaction_ids=_ids(payload, "transaction_ids"),
        rental_ids=_ids(payload, "rental_ids"),
        agent_name=payload.get("agent_name"),
        receipt_number=payload.get("receipt_number"),
        issued_at=issued_at,
    )


@receipts_bp.post("")
def receipt_route():
    """
    Request body:
    {
        "transaction_ids": [1, 2],
        "rental_ids": [4],
        "agent_name": "Sara"     (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        receipt = _build(payload)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(receipt), 200


@receipts_bp.post("/text")
def receipt_text_route():
    """Same body as POST /api/receipts; answers text/plain for the printer."""
    payload = request.get_json(silent=True) or {}
    try:
        receipt = _build(payload)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return Response(receipt_service.render_receipt_text(receipt), mimetype="text/plain")
