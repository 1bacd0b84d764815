from flask import Blueprint, jsonify, request

from ..services import reporting_service
from . import SERVICE_ERRORS, error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/stats")
def stats_report():
    """Dashboard counters. Query params: from, to (ISO dates, to inclusive)."""
    try:
        stats = reporting_service.get_stats(
            date_from=request.args.get("from"),
            date_to=request.args.get("to"),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(stats), 200
