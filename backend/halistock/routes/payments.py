# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

# backend/halistock/routes/payments.py
"""
Payment API Routes

WHY: Customers settle sales and rentals in several payments. Each payment
is appended to the ledger and moves the target's balance forward.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import payment_service
from . import SERVICE_ERRORS, error_response, require_id


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


# =============================================================================
# PAYMENT CREATION
# =============================================================================

@payments_bp.post("")
def add_payment_route():
    """
    Add a payment to a transaction or a rental.

    Request body:
    {
        "target_kind": "rental",       ("transaction" or "rental")
        "target_id": 12,
        "amount_cents": 20000,
        "payment_method": "cash",      (optional: cash, card, transfer)
        "agent_name": "Sara",          (optional)
        "notes": "second instalment"   (optional)
    }

    Returns:
        201: payment applied, with the new balance
        400: invalid input (amount <= 0, unknown kind or method)
        404: target not found
        409: target is cancelled
        503: store unavailable
    """
    payload = request.get_json(silent=True) or {}
    try:
        result = payment_service.apply_payment(
            require_id(payload, "target_id"),
            payload.get("target_kind") or "",
            payload.get("amount_cents"),
            method=payload.get("payment_method"),
            agent_id=payload.get("agent_id"),
            agent_name=payload.get("agent_name"),
            notes=payload.get("notes"),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500

    if result is None:
        return jsonify({"error": "Payment target not found"}), 404

    payment = result.pop("payment")
    return jsonify({**result, "payment": payment.to_dict()}), 201


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("")
def list_payments_route():
    """Query params: transaction_id, rental_id, customer_phone."""
    payments = payment_service.list_payments(
        transaction_id=request.args.get("transaction_id", type=int),
        rental_id=request.args.get("rental_id", type=int),
        customer_phone=request.args.get("customer_phone"),
    )
    items = [p.to_dict() for p in payments]
    return jsonify({"items": items, "count": len(items)}), 200


@payments_bp.get("/<string:target_kind>/<int:target_id>/summary")
def payment_summary_route(target_kind: str, target_id: int):
    try:
        summary = payment_service.get_payment_summary(target_kind, target_id)
    except SERVICE_ERRORS as e:
        return error_response(e)

    if summary is None:
        return jsonify({"error": f"{target_kind.capitalize()} not found"}), 404
    return jsonify(summary), 200
