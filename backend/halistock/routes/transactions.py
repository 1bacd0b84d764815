# Overview: Flask API routes for sale and rental transactions.

from flask import Blueprint, current_app, jsonify, request

from ..services import sales_service
from . import SERVICE_ERRORS, error_response, pick, require_id


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

TRANSACTION_CREATE_FIELDS = (
    "type",
    "customer_name",
    "customer_phone",
    "customer_email",
    "quantity",
    "unit_price_cents",
    "discount_percent",
    "amount_paid_cents",
    "payment_method",
    "agent_id",
    "agent_name",
    "notes",
)


@transactions_bp.post("")
def create_transaction_route():
    """
    Record a sale or a rental transaction.

    Request body:
    {
        "type": "sale",
        "product_id": 1,
        "quantity": 2,
        "customer_name": "Amina",
        "customer_phone": "0550000000",
        "discount_percent": 10,        (optional)
        "amount_paid_cents": 1000      (optional, omitted = paid in full)
    }

    Returns:
        201: transaction recorded
        400: invalid input
        404: unknown product
        409: not enough stock
    """
    payload = request.get_json(silent=True) or {}
    fields = pick(payload, TRANSACTION_CREATE_FIELDS)
    fields.setdefault("type", "sale")
    try:
        tx = sales_service.record_transaction(product_id=require_id(payload, "product_id"), **fields)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(tx.to_dict()), 201


@transactions_bp.get("")
def list_transactions_route():
    """Query params: type, customer_phone, from, to (ISO dates, to inclusive)."""
    try:
        transactions = sales_service.list_transactions(
            type=request.args.get("type"),
            customer_phone=request.args.get("customer_phone"),
            date_from=request.args.get("from"),
            date_to=request.args.get("to"),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)

    items = [t.to_dict() for t in transactions]
    return jsonify({"items": items, "count": len(items)}), 200


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        tx = sales_service.get_transaction(transaction_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(tx.to_dict()), 200


@transactions_bp.post("/<int:transaction_id>/cancel")
def cancel_transaction_route(transaction_id: int):
    try:
        tx = sales_service.cancel_transaction(transaction_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(tx.to_dict()), 200
