# Overview: Flask API routes for the customer directory.

from flask import Blueprint, jsonify, request

from ..services import customer_service
from ..services.rental_service import rental_to_dict
from . import SERVICE_ERRORS, error_response, pick


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

CUSTOMER_OPTIONAL_FIELDS = ("email", "address", "notes")


@customers_bp.get("")
def search_customers_route():
    """Query params: q (substring of name, phone or email)."""
    customers = customer_service.search_customers(request.args.get("q"))
    items = [c.to_dict() for c in customers]
    return jsonify({"items": items, "count": len(items)}), 200


@customers_bp.post("")
def save_customer_route():
    """Create a customer, or refresh the one already registered under this phone."""
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.save_customer(
            name=payload.get("name"),
            phone=payload.get("phone"),
            **pick(payload, CUSTOMER_OPTIONAL_FIELDS),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)

    return jsonify(customer.to_dict()), 200


@customers_bp.get("/<string:phone>/history")
def customer_history_route(phone: str):
    try:
        customer = customer_service.get_customer(phone)
    except SERVICE_ERRORS as e:
        return error_response(e)

    history = customer_service.get_customer_history(phone)
    return jsonify({
        "customer": customer.to_dict(),
        "transactions": [t.to_dict() for t in history["transactions"]],
        "rentals": [rental_to_dict(r) for r in history["rentals"]],
        "payments": [p.to_dict() for p in history["payments"]],
        "stats": customer_service.customer_stats(history),
    }), 200
