# backend/halistock/routes/system.py
"""
System health endpoint.

Reports database reachability and the number of rentals whose calendar
still needs a rebuild.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, Rental
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        unsynced = db.session.query(Rental).filter_by(calendar_synced=False).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "degraded" if unsynced else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "rentals_pending_calendar_rebuild": unsynced,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (calendar rebuild pending)
    - 503: database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()

    http_status = 503 if database_health["status"] == "unhealthy" else 200
    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status
