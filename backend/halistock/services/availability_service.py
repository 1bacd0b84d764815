# Overview: Service-layer availability queries over the rental calendar.

"""
Availability Engine

Answers "is this product free?" from rental_calendar rows only.

READ POLICY:
- Dates are compared as calendar days; time-of-day is dropped on input.
- Range bounds are inclusive; start == end is a single-day range.
- Public reads fail OPEN: if the store errors, the failure is logged and the
  product is reported available. Writers never rely on this; the committer
  uses reserved_days() (fail closed) and the unique reservation index.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CalendarEntry
from ..validation import ValidationError, require_date_range
from halistock.time_utils import iter_days, month_bounds, to_iso_day, today


CALENDAR_RESERVED = "reserved"
CALENDAR_AVAILABLE = "available"


def reserved_days(product_id: int, start: date, end: date) -> list[date]:
    """
    Reserved days of a product within [start, end], ascending.

    Store errors propagate (used by writers).
    """
    rows = (
        db.session.query(CalendarEntry.reserved_date)
        .filter(
            CalendarEntry.product_id == product_id,
            CalendarEntry.status == CALENDAR_RESERVED,
            CalendarEntry.reserved_date >= start,
            CalendarEntry.reserved_date <= end,
        )
        .order_by(CalendarEntry.reserved_date.asc())
        .all()
    )
    return sorted({row.reserved_date for row in rows})


def is_range_free(product_id: int, start, end) -> bool:
    """
    True iff no reserved calendar day of product_id falls in [start, end].

    Raises:
        InvalidAmountError: start is after end
        ValidationError: unparseable date
    """
    start_day, end_day = require_date_range(start, end)
    try:
        return not reserved_days(product_id, start_day, end_day)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Availability check failed for product %s (%s..%s); reporting available",
            product_id, start_day, end_day,
            exc_info=True,
        )
        return True


def month_availability(product_id: int, month=None) -> dict:
    """
    Day-by-day availability of a product for the month containing `month`.

    `month` may be a date, a datetime, "YYYY-MM" or "YYYY-MM-DD"; None or an
    empty string means the current month.
    On store failure every day of the month is reported available.
    """
    if month is None or (isinstance(month, str) and not month.strip()):
        month = today()
    try:
        first, last = month_bounds(month)
    except (TypeError, ValueError):
        raise ValidationError("month must be YYYY-MM or an ISO-8601 date")

    try:
        reserved = set(reserved_days(product_id, first, last))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Month availability query failed for product %s (%s); reporting all days available",
            product_id, first.strftime("%Y-%m"),
            exc_info=True,
        )
        reserved = set()

    available_dates = []
    reserved_dates = []
    for day in iter_days(first, last):
        if day in reserved:
            reserved_dates.append(day)
        else:
            available_dates.append(day)

    return {
        "product_id": product_id,
        "month": first.strftime("%Y-%m"),
        "available_dates": available_dates,
        "reserved_dates": reserved_dates,
        "is_available": bool(available_dates),
    }


def serialize_month(result: dict) -> dict:
    """JSON-friendly copy of a month_availability() result."""
    return {
        **result,
        "available_dates": [to_iso_day(d) for d in result["available_dates"]],
        "reserved_dates": [to_iso_day(d) for d in result["reserved_dates"]],
    }
