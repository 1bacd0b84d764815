# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Ledger

WHY: Customers often pay a deposit now and the balance later, for sales and
rentals alike. The ledger keeps the running balance on the transaction or
rental row and an append-only history in payments.

DESIGN PRINCIPLES:
- amount_paid only grows, through a server-side increment
  (amount_paid = amount_paid + :delta) on a locked, version-checked row
- remaining = max(0, total - amount_paid); never negative
- Overpayment keeps the true cash received in amount_paid (tips, rounding)
  while remaining stays at 0
- Status: completed when nothing remains, partial once anything is paid,
  pending otherwise
- Immutable ledger: every payment appends one Payment row, never updated
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Payment, Rental, Transaction
from ..validation import ConflictError, ValidationError, optional_text, require_amount_cents
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# PAYMENT STATUS / METHODS / TARGETS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_COMPLETED = "completed"

PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_TRANSFER = "transfer"

VALID_PAYMENT_METHODS = [
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_TRANSFER,
]

TARGET_TRANSACTION = "transaction"
TARGET_RENTAL = "rental"

_TARGET_MODELS = {
    TARGET_TRANSACTION: Transaction,
    TARGET_RENTAL: Rental,
}


# =============================================================================
# BALANCE ARITHMETIC
# =============================================================================

def derive_payment_status(amount_paid_cents: int, remaining_amount_cents: int) -> str:
    if remaining_amount_cents == 0:
        return PAYMENT_STATUS_COMPLETED
    if amount_paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_PENDING


def compute_balance(total_amount_cents: int, amount_paid_cents: int) -> tuple[int, str]:
    """Return (remaining_amount_cents, payment_status) for a total and cash received."""
    remaining = max(0, total_amount_cents - amount_paid_cents)
    return remaining, derive_payment_status(amount_paid_cents, remaining)


def validate_payment_method(method: str | None) -> str:
    method = (method or PAYMENT_METHOD_CASH).strip().lower()
    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}")
    return method


def _target_model(target_kind: str):
    model = _TARGET_MODELS.get(target_kind)
    if model is None:
        raise ValidationError(f"Invalid payment target: {target_kind}. Must be one of {sorted(_TARGET_MODELS)}")
    return model


# =============================================================================
# PAYMENT APPLICATION
# =============================================================================

def record_payment_row(
    target,
    *,
    amount_cents: int,
    method: str,
    agent_id: str | None = None,
    agent_name: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Append a ledger row for `target` (Transaction or Rental) using its
    current balance. No commit; runs inside the caller's unit of work.
    """
    payment = Payment(
        transaction_id=target.id if isinstance(target, Transaction) else None,
        rental_id=target.id if isinstance(target, Rental) else None,
        customer_name=target.customer_name,
        customer_phone=target.customer_phone,
        amount_paid_cents=amount_cents,
        remaining_amount_cents=target.remaining_amount_cents,
        payment_method=method,
        agent_id=agent_id,
        agent_name=agent_name or "",
        notes=notes,
        is_completed=target.remaining_amount_cents == 0,
    )
    db.session.add(payment)
    db.session.flush()
    return payment


def apply_payment(
    target_id: int,
    target_kind: str,
    amount_cents,
    *,
    method: str | None = PAYMENT_METHOD_CASH,
    agent_id: str | None = None,
    agent_name: str | None = None,
    notes: str | None = None,
) -> dict | None:
    """
    Add a payment to a transaction or rental.

    Args:
        target_id: Transaction or Rental id
        target_kind: "transaction" or "rental"
        amount_cents: Amount received now (must be > 0)
        method: cash, card or transfer

    Returns:
        Dict with the new amount_paid_cents, remaining_amount_cents,
        payment_status and the appended payment; None when the target does
        not exist (it may have been deleted concurrently).

    Raises:
        InvalidAmountError: amount <= 0
        ValidationError: unknown target kind or payment method
        ConflictError: target is cancelled
        StoreUnavailableError: database failure after retries
    """
    amount = require_amount_cents("amount_cents", amount_cents, allow_zero=False)
    model = _target_model(target_kind)
    method = validate_payment_method(method)
    notes = optional_text(notes)

    def _op():
        target = lock_for_update(db.session.query(model).filter_by(id=target_id)).first()
        if target is None:
            current_app.logger.warning(
                "Payment of %s ignored: %s %s not found", amount, target_kind, target_id
            )
            return None

        if target.status == "cancelled":
            raise ConflictError(f"Cannot add payment to a cancelled {target_kind}")

        # Server-side increment; the version check rejects a concurrent writer
        target.amount_paid_cents = model.amount_paid_cents + amount
        db.session.flush()

        remaining, status = compute_balance(target.total_amount_cents, target.amount_paid_cents)
        target.remaining_amount_cents = remaining
        target.payment_status = status

        payment = record_payment_row(
            target,
            amount_cents=amount,
            method=method,
            agent_id=agent_id,
            agent_name=agent_name,
            notes=notes,
        )

        db.session.commit()

        current_app.logger.info(
            "Payment %s applied to %s %s: paid=%s remaining=%s status=%s",
            payment.id, target_kind, target.id,
            target.amount_paid_cents, remaining, status,
        )
        return {
            "target_kind": target_kind,
            "target_id": target.id,
            "amount_paid_cents": target.amount_paid_cents,
            "remaining_amount_cents": remaining,
            "payment_status": status,
            "payment": payment,
        }

    return run_with_retry(_op)


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

def list_payments(
    *,
    transaction_id: int | None = None,
    rental_id: int | None = None,
    customer_phone: str | None = None,
) -> list[Payment]:
    """Ledger rows matching the given filters, oldest first."""
    query = db.session.query(Payment)
    if transaction_id is not None:
        query = query.filter_by(transaction_id=transaction_id)
    if rental_id is not None:
        query = query.filter_by(rental_id=rental_id)
    if customer_phone:
        query = query.filter_by(customer_phone=customer_phone)
    return query.order_by(Payment.created_at.asc(), Payment.id.asc()).all()


def get_payment_summary(target_kind: str, target_id: int) -> dict | None:
    """
    Balance of a transaction or rental plus its ledger rows.

    Returns None when the target does not exist.
    """
    model = _target_model(target_kind)
    target = db.session.get(model, target_id)
    if target is None:
        return None

    if target_kind == TARGET_TRANSACTION:
        payments = list_payments(transaction_id=target_id)
    else:
        payments = list_payments(rental_id=target_id)

    return {
        "target_kind": target_kind,
        "target_id": target_id,
        "total_amount_cents": target.total_amount_cents,
        "amount_paid_cents": target.amount_paid_cents,
        "remaining_amount_cents": target.remaining_amount_cents,
        "payment_status": target.payment_status,
        "payments": [p.to_dict() for p in payments],
    }
