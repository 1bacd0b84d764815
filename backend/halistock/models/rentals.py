from __future__ import annotations

from sqlalchemy import text

from ..extensions import db
from halistock.time_utils import to_iso_day, to_utc_z


class Rental(db.Model):
    """
    Rental of one product over an inclusive calendar-day range.

    SOURCE OF TRUTH: rental rows are authoritative; rental_calendar rows are a
    derived per-day index that can be rebuilt from them. calendar_synced is
    False while the index is known to be missing days for this rental.

    STATUS: active, returned, cancelled. "overdue" is derived at read time
    and never stored.
    """
    __tablename__ = "rentals"
    __table_args__ = (
        db.CheckConstraint("rental_start_date <= rental_end_date", name="ck_rentals_date_order"),
        db.Index("ix_rentals_product_status", "product_id", "status"),
        db.Index("ix_rentals_customer_phone", "customer_phone"),
        db.Index("ix_rentals_status_end", "status", "rental_end_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)

    # Inclusive on both ends
    rental_start_date = db.Column(db.Date, nullable=False)
    rental_end_date = db.Column(db.Date, nullable=False)
    rental_days = db.Column(db.Integer, nullable=False)

    daily_rate_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_percent = db.Column(db.Integer, nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    deposit_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Payment tracking (all amounts in cents)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending, partial, completed

    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    calendar_synced = db.Column(db.Boolean, nullable=False, default=True)

    agent_id = db.Column(db.String(64), nullable=True)
    agent_name = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("rentals", lazy=True))
    transaction = db.relationship("Transaction", backref=db.backref("rentals", lazy=True))
    calendar_entries = db.relationship(
        "CalendarEntry",
        backref="rental",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "transaction_id": self.transaction_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "rental_start_date": to_iso_day(self.rental_start_date),
            "rental_end_date": to_iso_day(self.rental_end_date),
            "rental_days": self.rental_days,
            "daily_rate_cents": self.daily_rate_cents,
            "discount_percent": self.discount_percent,
            "discount_amount_cents": self.discount_amount_cents,
            "deposit_amount_cents": self.deposit_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "payment_status": self.payment_status,
            "status": self.status,
            "calendar_synced": self.calendar_synced,
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "returned_at": to_utc_z(self.returned_at) if self.returned_at else None,
            "version_id": self.version_id,
        }


class CalendarEntry(db.Model):
    """
    One reserved (or released) day of a product, owned by a rental.

    INVARIANT: at most one row per (product_id, reserved_date) with
    status='reserved'. The partial unique index enforces it in the database,
    so two overlapping bookings cannot both commit.
    """
    __tablename__ = "rental_calendar"
    __table_args__ = (
        db.Index(
            "uq_rental_calendar_reserved_day",
            "product_id",
            "reserved_date",
            unique=True,
            sqlite_where=text("status = 'reserved'"),
            postgresql_where=text("status = 'reserved'"),
        ),
        db.Index("ix_rental_calendar_product_date", "product_id", "reserved_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    rental_id = db.Column(db.Integer, db.ForeignKey("rentals.id", ondelete="CASCADE"), nullable=False, index=True)
    reserved_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="reserved")  # reserved, available

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "rental_id": self.rental_id,
            "reserved_date": to_iso_day(self.reserved_date),
            "status": self.status,
        }
