from __future__ import annotations

from ..extensions import db
from halistock.time_utils import to_utc_z

class Transaction(db.Model):
    """
    Sale or rental transaction (one product line per row).

    Payment tracking mirrors Rental: amount_paid_cents is the cash actually
    received (may exceed the total), remaining_amount_cents is clamped at 0,
    payment_status is derived from both.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_type_created", "type", "created_at"),
        db.Index("ix_transactions_customer_phone", "customer_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False, index=True)  # sale, rental
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    # Snapshot so receipts survive product renames
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Integer, nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)  # per unit
    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Payment tracking (all amounts in cents)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending, partial, completed

    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)  # completed, cancelled

    agent_id = db.Column(db.String(64), nullable=True)
    agent_name = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_percent": self.discount_percent,
            "discount_amount_cents": self.discount_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "payment_status": self.payment_status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "status": self.status,
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }

class Payment(db.Model):
    """
    Payment ledger row for a transaction or a rental.

    IMMUTABLE: rows are appended by the payment ledger and never updated or
    deleted. amount_paid_cents is the delta received by this payment;
    remaining_amount_cents is the balance left right after it.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint(
            "(transaction_id IS NULL) <> (rental_id IS NULL)",
            name="ck_payments_single_target",
        ),
        db.Index("ix_payments_customer_phone", "customer_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    rental_id = db.Column(db.Integer, db.ForeignKey("rentals.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)

    amount_paid_cents = db.Column(db.Integer, nullable=False)
    remaining_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")  # cash, card, transfer
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    agent_id = db.Column(db.String(64), nullable=True)
    agent_name = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.Text, nullable=True)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship("Transaction", backref=db.backref("payments", lazy=True))
    rental = db.relationship("Rental", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "rental_id": self.rental_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "amount_paid_cents": self.amount_paid_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "payment_method": self.payment_method,
            "payment_date": to_utc_z(self.payment_date),
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "notes": self.notes,
            "is_completed": self.is_completed,
            "created_at": to_utc_z(self.created_at),
        }
