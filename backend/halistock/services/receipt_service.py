# Overview: Service-layer operations for receipts; assembles receipt data and a printable text layout.

"""
Receipt Builder

A receipt groups transactions and rentals of ONE customer into a single
document: store header, customer block, item lines, totals and the return
date of every rented item. build_receipt() returns plain data (the API
serves it as JSON); render_receipt_text() lays it out for a thermal printer.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from flask import current_app

from ..extensions import db
from ..models import Rental, Transaction
from ..validation import NotFoundError, ValidationError
from ..time_utils import to_iso_day, to_utc_z, utcnow


RECEIPT_WIDTH = 48

LINE_TYPE_SALE = "sale"
LINE_TYPE_RENTAL = "rental"


def _load(model, ids, label: str) -> list:
    rows = []
    for row_id in ids:
        row = db.session.get(model, row_id)
        if row is None:
            raise NotFoundError(f"{label} {row_id} not found")
        rows.append(row)
    return rows


def _barcode(product) -> str | None:
    return product.barcode if product is not None else None


def _transaction_line(tx: Transaction, rental: Rental | None) -> dict:
    line = {
        "name": tx.product_name,
        "quantity": tx.quantity,
        "unit_price_cents": tx.unit_price_cents,
        "discount_percent": tx.discount_percent,
        "discount_amount_cents": tx.discount_amount_cents * tx.quantity,
        "type": tx.type,
        "rental_days": None,
        "line_total_cents": tx.total_amount_cents,
        "barcode": _barcode(tx.product),
        "return_date": None,
    }
    if rental is not None:
        line["rental_days"] = rental.rental_days
        line["return_date"] = to_iso_day(rental.rental_end_date + timedelta(days=1))
    return line


def _rental_line(rental: Rental) -> dict:
    return {
        "name": rental.product.name if rental.product else f"Product {rental.product_id}",
        "quantity": 1,
        "unit_price_cents": rental.daily_rate_cents,
        "discount_percent": rental.discount_percent,
        "discount_amount_cents": rental.discount_amount_cents * rental.rental_days,
        "type": LINE_TYPE_RENTAL,
        "rental_days": rental.rental_days,
        "line_total_cents": rental.total_amount_cents,
        "barcode": _barcode(rental.product),
        # Due back the day after the last rented day
        "return_date": to_iso_day(rental.rental_end_date + timedelta(days=1)),
    }


def build_receipt(
    transaction_ids=(),
    rental_ids=(),
    agent_name: str | None = None,
    receipt_number: str | None = None,
    issued_at: datetime | None = None,
) -> dict:
    """
    Assemble a receipt for the given transactions and rentals.

    A rental booked through one of the listed transactions is folded into that
    transaction's line instead of being printed twice.

    Raises:
        ValidationError: nothing to print, or lines of different customers
        NotFoundError: unknown transaction or rental id
    """
    transactions = _load(Transaction, transaction_ids or (), "Transaction")
    rentals = _load(Rental, rental_ids or (), "Rental")
    if not transactions and not rentals:
        raise ValidationError("A receipt needs at least one transaction or rental")

    phones = {t.customer_phone for t in transactions} | {r.customer_phone for r in rentals}
    if len(phones) > 1:
        raise ValidationError("All receipt lines must belong to the same customer")

    linked = {r.transaction_id: r for r in rentals if r.transaction_id is not None}
    tx_ids = {t.id for t in transactions}

    items = [_transaction_line(t, linked.get(t.id)) for t in transactions]
    items += [_rental_line(r) for r in rentals if r.transaction_id not in tx_ids]

    total = sum(i["line_total_cents"] for i in items)
    total_discount = sum(i["discount_amount_cents"] for i in items)

    paid = sum(t.amount_paid_cents for t in transactions)
    remaining = sum(t.remaining_amount_cents for t in transactions)
    for r in rentals:
        if r.transaction_id not in tx_ids:
            paid += r.amount_paid_cents
            remaining += r.remaining_amount_cents

    first = transactions[0] if transactions else rentals[0]
    issued_at = issued_at or utcnow()
    config = current_app.config

    return {
        "receipt_number": receipt_number or f"REC-{int(issued_at.replace(tzinfo=timezone.utc).timestamp() * 1000)}",
        "issued_at": to_utc_z(issued_at),
        "agent_name": agent_name or first.agent_name or "",
        "store": {
            "name": config["STORE_NAME"],
            "tagline": config.get("STORE_TAGLINE", ""),
            "address": config["STORE_ADDRESS"],
            "phone": config["STORE_PHONE"],
        },
        "currency": config["CURRENCY"],
        "customer": {
            "name": first.customer_name,
            "phone": first.customer_phone,
            "email": first.customer_email,
        },
        "items": items,
        "subtotal_cents": total + total_discount,
        "total_discount_cents": total_discount,
        "total_cents": total,
        "amount_paid_cents": paid,
        "remaining_amount_cents": remaining,
        "returns": [
            {"name": i["name"], "return_date": i["return_date"]}
            for i in items if i["return_date"]
        ],
    }


# =============================================================================
# TEXT LAYOUT
# =============================================================================

def format_money(cents: int, currency: str) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d} {currency}"


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    space = width - len(right) - 1
    return f"{left[:space]:<{space}} {right}"


def render_receipt_text(receipt: dict) -> str:
    currency = receipt["currency"]
    store = receipt["store"]
    customer = receipt["customer"]
    rule = "-" * RECEIPT_WIDTH

    lines = [store["name"].center(RECEIPT_WIDTH)]
    if store.get("tagline"):
        lines.append(store["tagline"].center(RECEIPT_WIDTH))
    lines += [
        store["address"].center(RECEIPT_WIDTH),
        f"Tel: {store['phone']}".center(RECEIPT_WIDTH),
        rule,
        f"Receipt: {receipt['receipt_number']}",
        f"Date: {receipt['issued_at']}",
        f"Agent: {receipt['agent_name']}",
        rule,
        f"Customer: {customer['name']}",
        f"Phone: {customer['phone']}",
    ]
    if customer.get("email"):
        lines.append(f"Email: {customer['email']}")
    lines.append(rule)

    for item in receipt["items"]:
        kind = "Rental" if item["type"] == LINE_TYPE_RENTAL else "Sale"
        if item["rental_days"]:
            kind += f" ({item['rental_days']}d)"
        lines.append(_row(item["name"], format_money(item["line_total_cents"], currency)))
        detail = f"  {item['quantity']} x {format_money(item['unit_price_cents'], currency)}  {kind}"
        if item["discount_percent"]:
            detail += f"  -{item['discount_percent']}%"
        lines.append(detail)
        if item["barcode"]:
            lines.append(f"  Code: {item['barcode']}")

    lines.append(rule)
    if receipt["total_discount_cents"] > 0:
        lines.append(_row("Subtotal", format_money(receipt["subtotal_cents"], currency)))
        lines.append(_row("Discount", format_money(-receipt["total_discount_cents"], currency)))
    lines.append(_row("TOTAL", format_money(receipt["total_cents"], currency)))
    lines.append(_row("Paid", format_money(receipt["amount_paid_cents"], currency)))
    if receipt["remaining_amount_cents"] > 0:
        lines.append(_row("Balance due", format_money(receipt["remaining_amount_cents"], currency)))

    if receipt["returns"]:
        lines.append(rule)
        lines.append("RETURNS")
        for ret in receipt["returns"]:
            lines.append(_row(ret["name"], ret["return_date"]))

    lines.append(rule)
    lines.append("Thank you!".center(RECEIPT_WIDTH))
    return "\n".join(lines) + "\n"
