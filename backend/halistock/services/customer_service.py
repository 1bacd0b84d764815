# Overview: Service-layer operations for customers; phone-keyed upsert, search and history.

from __future__ import annotations

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, Payment, Rental, Transaction
from ..validation import NotFoundError, optional_text, require_text


def _apply_customer_fields(customer: Customer, name: str, email, address, notes) -> None:
    customer.name = name
    # Keep what we already know when the caller leaves a field empty
    if email:
        customer.email = email
    if address:
        customer.address = address
    if notes:
        customer.notes = notes


def upsert_customer(
    *,
    name: str,
    phone: str,
    email: str | None = None,
    address: str | None = None,
    notes: str | None = None,
    commit: bool = True,
) -> Customer:
    """
    Create the customer for `phone` or refresh its name/contact fields.

    Runs inside the caller's unit of work when commit=False.
    """
    name = require_text("customer_name", name)
    phone = require_text("customer_phone", phone, max_length=32)
    email = optional_text(email)
    address = optional_text(address)
    notes = optional_text(notes)

    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if customer is None:
        customer = Customer(name=name, phone=phone, email=email, address=address, notes=notes)
        db.session.add(customer)
    else:
        _apply_customer_fields(customer, name, email, address, notes)

    db.session.flush()
    if commit:
        db.session.commit()
    return customer


def save_customer(**fields) -> Customer:
    """
    Standalone upsert used by the API.

    A concurrent insert of the same phone loses the race on
    uq_customers_phone; the retry sees the winner's row and updates it.
    """
    try:
        return upsert_customer(**fields)
    except IntegrityError:
        db.session.rollback()
        return upsert_customer(**fields)


def get_customer(phone: str) -> Customer:
    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if not customer:
        raise NotFoundError(f"Customer {phone} not found")
    return customer


def search_customers(term: str | None = None) -> list[Customer]:
    """Case-insensitive substring search over name, phone and email."""
    query = db.session.query(Customer)
    term = (term or "").strip()
    if term:
        like = f"%{term.lower()}%"
        query = query.filter(or_(
            func.lower(Customer.name).like(like),
            Customer.phone.like(f"%{term}%"),
            func.lower(func.coalesce(Customer.email, "")).like(like),
        ))
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def get_customer_history(phone: str) -> dict:
    """Transactions, rentals and payments for a phone number, newest first."""
    transactions = (
        db.session.query(Transaction)
        .filter_by(customer_phone=phone)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )
    rentals = (
        db.session.query(Rental)
        .filter_by(customer_phone=phone)
        .order_by(Rental.created_at.desc(), Rental.id.desc())
        .all()
    )
    payments = (
        db.session.query(Payment)
        .filter_by(customer_phone=phone)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
    return {"transactions": transactions, "rentals": rentals, "payments": payments}


def customer_stats(history: dict) -> dict:
    """
    Per-customer aggregates over a get_customer_history() result.

    Rentals linked to a transaction are counted once, through the transaction.
    """
    transactions = history["transactions"]
    rentals = [r for r in history["rentals"] if r.transaction_id is None]

    total_spent = sum(t.amount_paid_cents for t in transactions if t.status != "cancelled")
    total_spent += sum(r.amount_paid_cents for r in rentals if r.status != "cancelled")

    pending = sum(t.remaining_amount_cents for t in transactions if t.status != "cancelled")
    pending += sum(r.remaining_amount_cents for r in rentals if r.status != "cancelled")

    return {
        "total_spent_cents": total_spent,
        "total_transactions": len(transactions) + len(rentals),
        "pending_amount_cents": pending,
        "active_rentals": sum(1 for r in history["rentals"] if r.status == "active"),
    }
