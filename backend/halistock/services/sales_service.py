"""
Sales Service - sale and rental transactions

WHY: Every counter operation (selling an item, or billing a rental) is a
transaction row with its own payment balance. Sales take stock; rental
transactions never do (the rental calendar tracks the unit instead).
"""

from __future__ import annotations

from datetime import datetime, time, timedelta

from flask import current_app

from ..extensions import db
from ..models import Product, Transaction
from ..validation import (
    NotFoundError,
    ValidationError,
    optional_text,
    require_amount_cents,
    require_percent,
    require_positive_int,
    require_text,
)
from ..time_utils import to_day
from .concurrency import lock_for_update, run_with_retry
from .customer_service import upsert_customer
from .payment_service import compute_balance, record_payment_row, validate_payment_method
from .products_service import apply_stock_delta, take_stock


TRANSACTION_TYPE_SALE = "sale"
TRANSACTION_TYPE_RENTAL = "rental"
VALID_TRANSACTION_TYPES = [TRANSACTION_TYPE_SALE, TRANSACTION_TYPE_RENTAL]

TRANSACTION_STATUS_COMPLETED = "completed"
TRANSACTION_STATUS_CANCELLED = "cancelled"


def _price_line(unit_price_cents: int, quantity: int, discount_percent: int) -> tuple[int, int]:
    """Return (total_amount_cents, per-unit discount_amount_cents)."""
    discount_amount = unit_price_cents * discount_percent // 100
    return (unit_price_cents - discount_amount) * quantity, discount_amount


def record_transaction(
    *,
    type: str,
    product_id: int,
    customer_name: str,
    customer_phone: str,
    quantity=1,
    unit_price_cents=None,
    discount_percent=0,
    customer_email: str | None = None,
    amount_paid_cents=None,
    payment_method: str | None = None,
    agent_id: str | None = None,
    agent_name: str | None = None,
    notes: str | None = None,
) -> Transaction:
    """
    Record a sale or rental transaction.

    unit_price_cents defaults to the product's sale price (sale) or rental
    price per day (rental). amount_paid_cents=None means paid in full.

    Raises:
        ValidationError: bad input
        NotFoundError: unknown product
        ConflictError: not enough stock for a sale
    """
    if type not in VALID_TRANSACTION_TYPES:
        raise ValidationError(f"Invalid transaction type: {type}. Must be one of {VALID_TRANSACTION_TYPES}")
    customer = {
        "name": require_text("customer_name", customer_name),
        "phone": require_text("customer_phone", customer_phone, max_length=32),
        "email": optional_text(customer_email),
    }
    quantity = require_positive_int("quantity", quantity)
    discount_percent = require_percent("discount_percent", discount_percent)
    method = validate_payment_method(payment_method)

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if type == TRANSACTION_TYPE_SALE:
            take_stock(product, quantity)

        if unit_price_cents is None:
            price = product.sale_price_cents if type == TRANSACTION_TYPE_SALE else product.rental_price_per_day_cents
        else:
            price = require_amount_cents("unit_price_cents", unit_price_cents, allow_zero=True)
        total, discount_amount = _price_line(price, quantity, discount_percent)
        total = require_amount_cents("total_amount_cents", total, allow_zero=True)

        if amount_paid_cents is None:
            paid = total
        else:
            paid = require_amount_cents("amount_paid_cents", amount_paid_cents, allow_zero=True)
        remaining, payment_status = compute_balance(total, paid)

        upsert_customer(commit=False, **customer)

        tx = Transaction(
            type=type,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price_cents=price,
            discount_percent=discount_percent,
            discount_amount_cents=discount_amount,
            total_amount_cents=total,
            amount_paid_cents=paid,
            remaining_amount_cents=remaining,
            payment_status=payment_status,
            customer_name=customer["name"],
            customer_phone=customer["phone"],
            customer_email=customer["email"],
            status=TRANSACTION_STATUS_COMPLETED,
            agent_id=agent_id,
            agent_name=agent_name or "",
            notes=optional_text(notes),
        )
        db.session.add(tx)
        db.session.flush()

        if paid > 0:
            record_payment_row(
                tx,
                amount_cents=paid,
                method=method,
                agent_id=agent_id,
                agent_name=agent_name,
                notes="Initial payment",
            )

        db.session.commit()
        current_app.logger.info(
            "Transaction %s recorded: %s product=%s qty=%s total=%s paid=%s",
            tx.id, type, product_id, quantity, total, paid,
        )
        return tx

    return run_with_retry(_op)


def cancel_transaction(transaction_id: int) -> Transaction:
    """
    Cancel a transaction; a cancelled sale puts its quantity back in stock.

    Cancelling twice is a no-op.
    """
    def _op():
        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if not tx:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if tx.status == TRANSACTION_STATUS_CANCELLED:
            return tx

        tx.status = TRANSACTION_STATUS_CANCELLED
        if tx.type == TRANSACTION_TYPE_SALE and tx.product_id is not None:
            product = lock_for_update(db.session.query(Product).filter_by(id=tx.product_id)).first()
            if product is not None:
                apply_stock_delta(product, tx.quantity)

        db.session.commit()
        return tx

    return run_with_retry(_op)


def get_transaction(transaction_id: int) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if not tx:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return tx


def list_transactions(
    *,
    type: str | None = None,
    customer_phone: str | None = None,
    date_from=None,
    date_to=None,
) -> list[Transaction]:
    """Transactions newest first; date_to includes the whole day."""
    query = db.session.query(Transaction)
    if type:
        if type not in VALID_TRANSACTION_TYPES:
            raise ValidationError(f"Invalid transaction type filter: {type}")
        query = query.filter(Transaction.type == type)
    if customer_phone:
        query = query.filter(Transaction.customer_phone == customer_phone)
    start, end = created_at_window(date_from, date_to)
    if start is not None:
        query = query.filter(Transaction.created_at >= start)
    if end is not None:
        query = query.filter(Transaction.created_at < end)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


def created_at_window(date_from, date_to) -> tuple[datetime | None, datetime | None]:
    """
    Half-open [start, end) datetime window for day-granular filters.

    date_to is inclusive of its whole day.
    """
    try:
        start_day = to_day(date_from)
        end_day = to_day(date_to)
    except (TypeError, ValueError):
        raise ValidationError("date filters must be ISO-8601 dates")
    start = datetime.combine(start_day, time.min) if start_day else None
    end = datetime.combine(end_day + timedelta(days=1), time.min) if end_day else None
    return start, end
