# Overview: Flask API routes for rental availability; read-only calendar queries.

from flask import Blueprint, request

from ..services import availability_service
from ..time_utils import to_iso_day, today
from ..validation import require_date_range
from . import SERVICE_ERRORS, error_response

availability_bp = Blueprint("availability", __name__, url_prefix="/api/availability")


@availability_bp.get("/<int:product_id>")
def range_availability(product_id: int):
    """
    Is the product free on every day of [start, end]?

    Query params: start, end (ISO dates, inclusive)
    """
    start = request.args.get("start")
    end = request.args.get("end")
    try:
        start_day, end_day = require_date_range(start, end)
        available = availability_service.is_range_free(product_id, start_day, end_day)
    except SERVICE_ERRORS as e:
        return error_response(e)

    return {
        "product_id": product_id,
        "start": to_iso_day(start_day),
        "end": to_iso_day(end_day),
        "available": available,
    }, 200


@availability_bp.get("/<int:product_id>/month")
def month_view(product_id: int):
    """Query params: month=YYYY-MM (defaults to the current month)."""
    month = request.args.get("month") or today()
    try:
        result = availability_service.month_availability(product_id, month)
    except SERVICE_ERRORS as e:
        return error_response(e)

    return availability_service.serialize_month(result), 200
