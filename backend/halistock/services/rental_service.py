# Overview: Service-layer operations for rentals; reservation commit, release and calendar reconciliation.

"""
Reservation Committer

WHY: A rentable product is a single unit. Booking it for a date range must
never double-book a day, even with several agents at the counter.

HOW:
- The product row is locked, then reserved days in the range are read; any
  overlap is a ConflictError before anything is written.
- The rental and one rental_calendar row per day are written in the same
  unit of work. uq_rental_calendar_reserved_day (partial unique index on
  reserved days) is the real guarantee: if a concurrent booking slipped past
  the read, the insert fails, everything is rolled back, ConflictError.
- Any other store failure while writing calendar rows does not cancel the
  booking: the rental is stored alone with calendar_synced=False and the
  failure is logged. Rental rows are the source of truth and
  rebuild_calendar() restores the index from them.

STATE MACHINE:
- active -> returned | cancelled (both release the calendar days)
- returned/cancelled accept only the same status again (idempotent)
- overdue is never stored; see effective_rental_status()
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..extensions import db
from ..models import CalendarEntry, Product, Rental
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    optional_text,
    require_amount_cents,
    require_date_range,
    require_percent,
    require_text,
)
from halistock.time_utils import iter_days, parse_iso_datetime, to_iso_day, today as utc_today, utcnow
from .availability_service import CALENDAR_AVAILABLE, CALENDAR_RESERVED, reserved_days
from .concurrency import lock_for_update, run_with_retry
from .customer_service import upsert_customer
from .payment_service import compute_balance, record_payment_row, validate_payment_method


RENTAL_STATUS_ACTIVE = "active"
RENTAL_STATUS_RETURNED = "returned"
RENTAL_STATUS_CANCELLED = "cancelled"
RENTAL_STATUS_OVERDUE = "overdue"  # derived only

# Longest booking accepted in one commit
MAX_RENTAL_DAYS = 366

STORED_RENTAL_STATUSES = [
    RENTAL_STATUS_ACTIVE,
    RENTAL_STATUS_RETURNED,
    RENTAL_STATUS_CANCELLED,
]


def effective_rental_status(status: str, end_date: date, today: date | None = None) -> str:
    """Read-time status: an active rental past its end date is overdue."""
    today = today or utc_today()
    if status == RENTAL_STATUS_ACTIVE and end_date < today:
        return RENTAL_STATUS_OVERDUE
    return status


def rental_to_dict(rental: Rental, today: date | None = None) -> dict:
    data = rental.to_dict()
    data["effective_status"] = effective_rental_status(rental.status, rental.rental_end_date, today)
    return data


def _price_rental(
    daily_rate_cents: int,
    rental_days: int,
    discount_percent: int,
    total_amount_cents,
) -> tuple[int, int]:
    """
    Return (total_amount_cents, discount_amount_cents).

    The discount applies to the daily rate. An explicit total overrides the
    computed one (negotiated price).
    """
    discount_amount = daily_rate_cents * discount_percent // 100
    if total_amount_cents is not None:
        return require_amount_cents("total_amount_cents", total_amount_cents, allow_zero=True), discount_amount
    return (daily_rate_cents - discount_amount) * rental_days, discount_amount


def _reserve_days(rental: Rental) -> list[CalendarEntry]:
    """Insert one reserved calendar row per rental day and flush."""
    entries = [
        CalendarEntry(
            product_id=rental.product_id,
            rental_id=rental.id,
            reserved_date=day,
            status=CALENDAR_RESERVED,
        )
        for day in iter_days(rental.rental_start_date, rental.rental_end_date)
    ]
    db.session.add_all(entries)
    db.session.flush()
    return entries


def _store_rental(fields: dict, customer: dict, payment: dict | None, *, calendar_synced: bool) -> Rental:
    upsert_customer(commit=False, **customer)

    rental = Rental(calendar_synced=calendar_synced, **fields)
    db.session.add(rental)
    db.session.flush()

    if payment:
        record_payment_row(rental, **payment)
    return rental


def _conflict(product_id: int, days: list[date]) -> ConflictError:
    return ConflictError(
        "Product is not available for these dates",
        details={
            "product_id": product_id,
            "conflicting_dates": [to_iso_day(d) for d in days],
        },
    )


def commit_rental(
    *,
    product_id: int,
    customer_name: str,
    customer_phone: str,
    start_date,
    end_date,
    customer_email: str | None = None,
    daily_rate_cents=None,
    discount_percent=0,
    total_amount_cents=None,
    amount_paid_cents=None,
    deposit_amount_cents=0,
    payment_method: str | None = None,
    transaction_id: int | None = None,
    agent_id: str | None = None,
    agent_name: str | None = None,
    notes: str | None = None,
) -> Rental:
    """
    Book `product_id` from start_date to end_date (inclusive).

    daily_rate_cents defaults to the product's rental price per day.
    amount_paid_cents=None means paid in full; 0 leaves the rental pending.

    Returns:
        The committed Rental. calendar_synced is False if its calendar rows
        could not be written (see module notes).

    Raises:
        ValidationError / InvalidAmountError: bad input (nothing written)
        NotFoundError: unknown product
        ConflictError: a day in the range is already reserved
        StoreUnavailableError: database failure after retries
    """
    start_day, end_day = require_date_range(start_date, end_date)
    customer = {
        "name": require_text("customer_name", customer_name),
        "phone": require_text("customer_phone", customer_phone, max_length=32),
        "email": optional_text(customer_email),
    }
    discount_percent = require_percent("discount_percent", discount_percent)
    deposit = require_amount_cents("deposit_amount_cents", deposit_amount_cents or 0, allow_zero=True)
    method = validate_payment_method(payment_method)
    rental_days = (end_day - start_day).days + 1
    if rental_days > MAX_RENTAL_DAYS:
        raise ValidationError(f"A rental cannot exceed {MAX_RENTAL_DAYS} days (got {rental_days})")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_available_for_rental:
            raise ValidationError(f"Product {product_id} is not available for rental")

        taken = reserved_days(product_id, start_day, end_day)
        if taken:
            raise _conflict(product_id, taken)

        rate = product.rental_price_per_day_cents if daily_rate_cents is None else daily_rate_cents
        rate = require_amount_cents("daily_rate_cents", rate, allow_zero=True)
        total, discount_amount = _price_rental(rate, rental_days, discount_percent, total_amount_cents)

        if amount_paid_cents is None:
            paid = total
        else:
            paid = require_amount_cents("amount_paid_cents", amount_paid_cents, allow_zero=True)
        remaining, payment_status = compute_balance(total, paid)

        fields = {
            "product_id": product_id,
            "transaction_id": transaction_id,
            "customer_name": customer["name"],
            "customer_phone": customer["phone"],
            "customer_email": customer["email"],
            "rental_start_date": start_day,
            "rental_end_date": end_day,
            "rental_days": rental_days,
            "daily_rate_cents": rate,
            "discount_percent": discount_percent,
            "discount_amount_cents": discount_amount,
            "deposit_amount_cents": deposit,
            "total_amount_cents": total,
            "amount_paid_cents": paid,
            "remaining_amount_cents": remaining,
            "payment_status": payment_status,
            "status": RENTAL_STATUS_ACTIVE,
            "agent_id": agent_id,
            "agent_name": agent_name or "",
            "notes": optional_text(notes),
        }
        payment = None
        if paid > 0:
            payment = {
                "amount_cents": paid,
                "method": method,
                "agent_id": agent_id,
                "agent_name": agent_name,
                "notes": "Initial payment",
            }

        rental = _store_rental(fields, customer, payment, calendar_synced=True)

        try:
            _reserve_days(rental)
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info(
                "Concurrent reservation won for product %s (%s..%s)", product_id, start_day, end_day
            )
            raise _conflict(product_id, reserved_days(product_id, start_day, end_day))
        except OperationalError:
            # Lock timeouts and deadlocks retry the whole booking
            raise
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.error(
                "Calendar rows for product %s (%s..%s) could not be written; "
                "storing rental without calendar, run rebuild_calendar",
                product_id, start_day, end_day,
                exc_info=True,
            )
            rental = _store_rental(fields, customer, payment, calendar_synced=False)

        db.session.commit()

        current_app.logger.info(
            "Rental %s committed: product=%s %s..%s total=%s paid=%s",
            rental.id, product_id, start_day, end_day, total, paid,
        )
        return rental

    return run_with_retry(_op)


def _release_calendar(rental_id: int) -> int:
    """Flip every reserved day of a rental to available; returns rows changed."""
    return (
        db.session.query(CalendarEntry)
        .filter(
            CalendarEntry.rental_id == rental_id,
            CalendarEntry.status == CALENDAR_RESERVED,
        )
        .update({CalendarEntry.status: CALENDAR_AVAILABLE}, synchronize_session="fetch")
    )


def _transition(rental_id: int, new_status: str, returned_at=None) -> Rental:
    def _op():
        rental = lock_for_update(db.session.query(Rental).filter_by(id=rental_id)).first()
        if not rental:
            raise NotFoundError(f"Rental {rental_id} not found")

        if rental.status != RENTAL_STATUS_ACTIVE and rental.status != new_status:
            raise ConflictError(
                f"Cannot change rental status from {rental.status} to {new_status}",
                details={"rental_id": rental_id, "status": rental.status},
            )

        if rental.status == RENTAL_STATUS_ACTIVE:
            rental.status = new_status
            if new_status == RENTAL_STATUS_RETURNED:
                rental.returned_at = returned_at or utcnow()

        released = _release_calendar(rental.id)
        db.session.commit()

        current_app.logger.info("Rental %s %s; %d calendar day(s) released", rental.id, new_status, released)
        return rental

    return run_with_retry(_op)


def release_rental(rental_id: int, returned_at=None) -> Rental:
    """Mark a rental returned and free its calendar days (idempotent)."""
    if isinstance(returned_at, str):
        try:
            returned_at = parse_iso_datetime(returned_at)
        except ValueError:
            raise ValidationError("returned_at must be an ISO-8601 datetime")
    return _transition(rental_id, RENTAL_STATUS_RETURNED, returned_at)


def cancel_rental(rental_id: int) -> Rental:
    """Cancel a rental and free its calendar days (idempotent)."""
    return _transition(rental_id, RENTAL_STATUS_CANCELLED)


def update_rental_status(rental_id: int, status: str, returned_at=None) -> Rental:
    if status == RENTAL_STATUS_RETURNED:
        return release_rental(rental_id, returned_at)
    if status == RENTAL_STATUS_CANCELLED:
        return cancel_rental(rental_id)
    if status == RENTAL_STATUS_OVERDUE:
        raise ValidationError("overdue is derived from the end date and cannot be set")
    raise ValidationError(f"Invalid rental status: {status}. Must be one of {STORED_RENTAL_STATUSES[1:]}")


def delete_rental(rental_id: int) -> None:
    """
    Delete a rental together with its calendar rows.

    Rentals with ledger payments cannot be deleted (cancel them instead).
    """
    def _op():
        rental = lock_for_update(db.session.query(Rental).filter_by(id=rental_id)).first()
        if not rental:
            raise NotFoundError(f"Rental {rental_id} not found")
        if rental.payments:
            raise ConflictError("Rental has payments; cancel it instead of deleting")
        db.session.delete(rental)
        db.session.commit()

    run_with_retry(_op)


def get_rental(rental_id: int) -> Rental:
    rental = db.session.get(Rental, rental_id)
    if not rental:
        raise NotFoundError(f"Rental {rental_id} not found")
    return rental


def list_rentals(
    *,
    status: str | None = None,
    product_id: int | None = None,
    customer_phone: str | None = None,
    today: date | None = None,
) -> list[Rental]:
    """
    Rentals newest first. status may be a stored status or "overdue", which
    selects active rentals whose end date is before today.
    """
    query = db.session.query(Rental)
    if status == RENTAL_STATUS_OVERDUE:
        query = query.filter(
            Rental.status == RENTAL_STATUS_ACTIVE,
            Rental.rental_end_date < (today or utc_today()),
        )
    elif status:
        if status not in STORED_RENTAL_STATUSES:
            raise ValidationError(f"Invalid rental status filter: {status}")
        query = query.filter(Rental.status == status)
    if product_id is not None:
        query = query.filter(Rental.product_id == product_id)
    if customer_phone:
        query = query.filter(Rental.customer_phone == customer_phone)
    return query.order_by(Rental.created_at.desc(), Rental.id.desc()).all()


# =============================================================================
# RECONCILIATION
# =============================================================================

def _rebuild_one(rental: Rental, report: dict) -> None:
    if rental.status != RENTAL_STATUS_ACTIVE:
        report["released"] += _release_calendar(rental.id)
        rental.calendar_synced = True
        return

    held = {
        entry.reserved_date: entry
        for entry in db.session.query(CalendarEntry).filter_by(rental_id=rental.id).all()
    }
    blocked = []
    for day in iter_days(rental.rental_start_date, rental.rental_end_date):
        entry = held.get(day)
        if entry is not None and entry.status == CALENDAR_RESERVED:
            continue

        owner = (
            db.session.query(CalendarEntry.rental_id)
            .filter(
                CalendarEntry.product_id == rental.product_id,
                CalendarEntry.reserved_date == day,
                CalendarEntry.status == CALENDAR_RESERVED,
            )
            .first()
        )
        if owner is not None:
            blocked.append({"date": to_iso_day(day), "held_by_rental_id": owner.rental_id})
            continue

        if entry is not None:
            entry.status = CALENDAR_RESERVED
        else:
            db.session.add(CalendarEntry(
                product_id=rental.product_id,
                rental_id=rental.id,
                reserved_date=day,
                status=CALENDAR_RESERVED,
            ))
        db.session.flush()
        report["created"] += 1

    if blocked:
        report["conflicts"].append({"rental_id": rental.id, "days": blocked})
        rental.calendar_synced = False
    else:
        rental.calendar_synced = True


def rebuild_calendar(rental_id: int | None = None) -> dict:
    """
    Rebuild rental_calendar from rental rows.

    Active rentals get any missing reserved day back; returned and cancelled
    rentals have leftover reserved days released. Days already held by
    another rental are reported, not taken over.

    Returns:
        {"rentals_checked", "created", "released", "conflicts": [...]}
    """
    def _op():
        query = db.session.query(Rental)
        if rental_id is not None:
            query = query.filter(Rental.id == rental_id)
        rentals = query.order_by(Rental.created_at.asc(), Rental.id.asc()).all()
        if rental_id is not None and not rentals:
            raise NotFoundError(f"Rental {rental_id} not found")

        report = {"rentals_checked": len(rentals), "created": 0, "released": 0, "conflicts": []}
        for rental in rentals:
            _rebuild_one(rental, report)

        db.session.commit()
        if report["conflicts"]:
            current_app.logger.warning("Calendar rebuild left %d rental(s) in conflict", len(report["conflicts"]))
        return report

    return run_with_retry(_op)
