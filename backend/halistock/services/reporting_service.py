# Overview: Service-layer operations for reporting; dashboard counters over sales, rentals and stock.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Rental, Transaction
from ..time_utils import today as utc_today
from .products_service import count_low_stock
from .rental_service import (
    RENTAL_STATUS_ACTIVE,
    RENTAL_STATUS_CANCELLED,
    RENTAL_STATUS_OVERDUE,
    effective_rental_status,
)
from .sales_service import (
    TRANSACTION_STATUS_CANCELLED,
    TRANSACTION_TYPE_RENTAL,
    TRANSACTION_TYPE_SALE,
    created_at_window,
)


def _windowed(query, column, start, end):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column < end)
    return query


def get_stats(date_from=None, date_to=None, today: date | None = None) -> dict:
    """
    Dashboard counters for transactions and rentals created in the window.

    A rental booked without a transaction counts once as a rental and its
    amount_paid counts as revenue, the same as a rental transaction. Stock
    counters (low_stock_items, total_products) ignore the window.
    """
    start, end = created_at_window(date_from, date_to)
    today = today or utc_today()

    tx_query = _windowed(
        db.session.query(Transaction).filter(Transaction.status != TRANSACTION_STATUS_CANCELLED),
        Transaction.created_at, start, end,
    )
    transactions = tx_query.all()
    rentals = _windowed(db.session.query(Rental), Rental.created_at, start, end).all()

    # Rentals linked to a transaction are already counted through it
    standalone = [
        r for r in rentals
        if r.transaction_id is None and r.status != RENTAL_STATUS_CANCELLED
    ]

    total_sales = sum(1 for t in transactions if t.type == TRANSACTION_TYPE_SALE)
    total_rentals = sum(1 for t in transactions if t.type == TRANSACTION_TYPE_RENTAL) + len(standalone)

    revenue = sum(t.amount_paid_cents for t in transactions)
    revenue += sum(r.amount_paid_cents for r in standalone)

    active_rentals = sum(1 for r in rentals if r.status == RENTAL_STATUS_ACTIVE)
    overdue_rentals = sum(
        1 for r in rentals
        if effective_rental_status(r.status, r.rental_end_date, today) == RENTAL_STATUS_OVERDUE
    )

    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 2)

    return {
        "total_sales": total_sales,
        "total_rentals": total_rentals,
        "revenue_cents": revenue,
        "low_stock_items": count_low_stock(threshold),
        "total_products": db.session.query(func.count(Product.id)).scalar() or 0,
        "active_rentals": active_rentals,
        "overdue_rentals": overdue_rentals,
        # Every active rental is still waiting to come back
        "pending_returns": active_rentals,
    }
