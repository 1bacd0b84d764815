# Overview: Flask API routes for rentals; booking, return, cancellation and calendar rebuild.

# backend/halistock/routes/rentals.py
"""
Rental API Routes

DESIGN:
- POST "" books a product for an inclusive date range (409 on overlap)
- return/cancel free the calendar days; repeating them is harmless
- "overdue" is never stored; every rental in a response carries
  effective_status computed for today
- rebuild-calendar reconciles rental_calendar with the rental rows
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import rental_service
from . import SERVICE_ERRORS, error_response, pick, require_id


rentals_bp = Blueprint("rentals", __name__, url_prefix="/api/rentals")

RENTAL_CREATE_FIELDS = (
    "customer_name",
    "customer_phone",
    "customer_email",
    "start_date",
    "end_date",
    "daily_rate_cents",
    "discount_percent",
    "total_amount_cents",
    "amount_paid_cents",
    "deposit_amount_cents",
    "payment_method",
    "transaction_id",
    "agent_id",
    "agent_name",
    "notes",
)


@rentals_bp.post("")
def create_rental_route():
    """
    Book a rental.

    Request body:
    {
        "product_id": 1,
        "customer_name": "Amina",
        "customer_phone": "0550000000",
        "start_date": "2024-06-10",
        "end_date": "2024-06-12",
        "amount_paid_cents": 50000,   (optional, omitted = paid in full)
        "payment_method": "cash"      (optional)
    }

    Returns:
        201: rental created
        400: invalid input
        404: unknown product
        409: dates already reserved (details.conflicting_dates)
        503: store unavailable
    """
    payload = request.get_json(silent=True) or {}
    try:
        rental = rental_service.commit_rental(
            product_id=require_id(payload, "product_id"),
            **pick(payload, RENTAL_CREATE_FIELDS),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create rental")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(rental_service.rental_to_dict(rental)), 201


@rentals_bp.get("")
def list_rentals_route():
    """Query params: status (active, returned, cancelled, overdue), product_id, customer_phone."""
    try:
        rentals = rental_service.list_rentals(
            status=request.args.get("status"),
            product_id=request.args.get("product_id", type=int),
            customer_phone=request.args.get("customer_phone"),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)

    items = [rental_service.rental_to_dict(r) for r in rentals]
    return jsonify({"items": items, "count": len(items)}), 200


@rentals_bp.get("/<int:rental_id>")
def get_rental_route(rental_id: int):
    try:
        rental = rental_service.get_rental(rental_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(rental_service.rental_to_dict(rental)), 200


@rentals_bp.post("/<int:rental_id>/return")
def return_rental_route(rental_id: int):
    """Request body (optional): {"returned_at": "2024-06-12T17:30:00Z"}"""
    payload = request.get_json(silent=True) or {}
    try:
        rental = rental_service.release_rental(rental_id, payload.get("returned_at"))
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to return rental %s", rental_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(rental_service.rental_to_dict(rental)), 200


@rentals_bp.post("/<int:rental_id>/cancel")
def cancel_rental_route(rental_id: int):
    try:
        rental = rental_service.cancel_rental(rental_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel rental %s", rental_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(rental_service.rental_to_dict(rental)), 200


@rentals_bp.delete("/<int:rental_id>")
def delete_rental_route(rental_id: int):
    try:
        rental_service.delete_rental(rental_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify({"ok": True}), 200


@rentals_bp.post("/rebuild-calendar")
def rebuild_calendar_route():
    """Request body (optional): {"rental_id": 12} to rebuild a single rental."""
    payload = request.get_json(silent=True) or {}
    try:
        rental_id = require_id(payload, "rental_id") if "rental_id" in payload else None
        report = rental_service.rebuild_calendar(rental_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Calendar rebuild failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(report), 200
