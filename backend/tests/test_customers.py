from datetime import date

import pytest

from halistock.extensions import db
from halistock.models import Customer
from halistock.services import customer_service, sales_service
from halistock.validation import NotFoundError, ValidationError


def test_upsert_creates_then_refreshes(db_session):
    created = customer_service.upsert_customer(
        name="Amina", phone="0550000001", email="amina@example.com", address="Oran",
    )
    updated = customer_service.upsert_customer(name="Amina B.", phone="0550000001", email="  ")

    assert updated.id == created.id
    assert updated.name == "Amina B."
    assert updated.email == "amina@example.com"
    assert updated.address == "Oran"
    assert db.session.query(Customer).count() == 1


def test_upsert_requires_name_and_phone(db_session):
    with pytest.raises(ValidationError):
        customer_service.upsert_customer(name="", phone="0550000001")
    with pytest.raises(ValidationError):
        customer_service.upsert_customer(name="Amina", phone=None)


def test_save_customer_commits(db_session):
    customer_service.save_customer(name="Karim", phone="0550000002", notes="VIP")
    db.session.rollback()

    assert customer_service.get_customer("0550000002").notes == "VIP"


def test_get_unknown_customer(db_session):
    with pytest.raises(NotFoundError):
        customer_service.get_customer("0000")


def test_search_by_name_phone_or_email(db_session):
    customer_service.upsert_customer(name="Amina Benali", phone="0550000001", email="amina@example.com")
    customer_service.upsert_customer(name="Karim D.", phone="0661000002")

    assert [c.phone for c in customer_service.search_customers("BENALI")] == ["0550000001"]
    assert [c.phone for c in customer_service.search_customers("0661")] == ["0661000002"]
    assert [c.phone for c in customer_service.search_customers("example.com")] == ["0550000001"]
    assert len(customer_service.search_customers("")) == 2


def test_history_and_stats(make_product, book):
    dress = make_product(stock=5, sale_price_cents=1000, rental_price_per_day_cents=2000)
    phone = "0550000007"

    sale = sales_service.record_transaction(
        type="sale", product_id=dress.id, customer_name="Lina", customer_phone=phone, amount_paid_cents=600,
    )
    cancelled = sales_service.record_transaction(
        type="sale", product_id=dress.id, customer_name="Lina", customer_phone=phone, amount_paid_cents=500,
    )
    sales_service.cancel_transaction(cancelled.id)
    rental = book(dress, date(2024, 6, 10), date(2024, 6, 10), customer_name="Lina", customer_phone=phone)

    history = customer_service.get_customer_history(phone)

    assert {t.id for t in history["transactions"]} == {sale.id, cancelled.id}
    assert [r.id for r in history["rentals"]] == [rental.id]
    assert len(history["payments"]) == 3

    stats = customer_service.customer_stats(history)
    assert stats == {
        "total_spent_cents": 600 + 2000,
        "total_transactions": 3,
        "pending_amount_cents": 400,
        "active_rentals": 1,
    }


def test_rental_linked_to_transaction_is_counted_once(make_product, book):
    dress = make_product(rental_price_per_day_cents=2000)
    phone = "0550000008"
    tx = sales_service.record_transaction(
        type="rental", product_id=dress.id, customer_name="Lina", customer_phone=phone,
    )
    book(dress, date(2024, 6, 10), date(2024, 6, 10), customer_name="Lina", customer_phone=phone, transaction_id=tx.id)

    stats = customer_service.customer_stats(customer_service.get_customer_history(phone))

    assert stats["total_spent_cents"] == 2000
    assert stats["total_transactions"] == 1
    assert stats["active_rentals"] == 1
