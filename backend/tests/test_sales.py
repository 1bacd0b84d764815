from datetime import timedelta

import pytest

from halistock.extensions import db
from halistock.models import Customer, Payment, Product, Transaction
from halistock.services import sales_service
from halistock.time_utils import today
from halistock.validation import ConflictError, NotFoundError, ValidationError


def _sell(product, **extra):
    fields = {
        "type": "sale",
        "product_id": product.id,
        "customer_name": "Karim",
        "customer_phone": "0550000002",
    }
    fields.update(extra)
    return sales_service.record_transaction(**fields)


def test_sale_takes_stock_and_is_paid_in_full(make_product):
    dress = make_product(stock=5, sale_price_cents=1500000)

    tx = _sell(dress, quantity=2)

    assert tx.type == "sale"
    assert tx.unit_price_cents == 1500000
    assert tx.total_amount_cents == 3000000
    assert tx.payment_status == "completed"
    assert tx.product_name == dress.name
    assert db.session.get(Product, dress.id).stock == 3
    assert db.session.query(Payment).filter_by(transaction_id=tx.id).one().amount_paid_cents == 3000000


def test_discount_applies_per_unit(make_product):
    dress = make_product(sale_price_cents=10000)

    tx = _sell(dress, quantity=3, discount_percent=15, amount_paid_cents=10000)

    assert tx.discount_amount_cents == 1500
    assert tx.total_amount_cents == 25500
    assert tx.remaining_amount_cents == 15500
    assert tx.payment_status == "partial"


def test_insufficient_stock_is_a_conflict(make_product):
    dress = make_product(stock=1)

    with pytest.raises(ConflictError) as excinfo:
        _sell(dress, quantity=2)

    assert excinfo.value.details == {"product_id": dress.id, "requested_quantity": 2, "stock": 1}
    assert db.session.query(Transaction).count() == 0
    assert db.session.query(Customer).count() == 0
    assert db.session.get(Product, dress.id).stock == 1


def test_quantity_must_be_a_positive_integer(make_product):
    dress = make_product(stock=5)

    with pytest.raises(ValidationError, match="quantity must be a positive integer"):
        _sell(dress, quantity=0)
    with pytest.raises(ValidationError, match="quantity must be an integer"):
        _sell(dress, quantity="1.5")

    # A large quantity is a stock problem, not a money one
    with pytest.raises(ConflictError) as excinfo:
        _sell(dress, quantity=1_000_000_000)
    assert excinfo.value.details["requested_quantity"] == 1_000_000_000

    assert _sell(dress, quantity="2").quantity == 2
    assert db.session.get(Product, dress.id).stock == 3


def test_rental_transaction_leaves_stock_alone(make_product):
    dress = make_product(stock=1, rental_price_per_day_cents=100000)

    tx = _sell(dress, type="rental", quantity=3)

    assert tx.unit_price_cents == 100000
    assert tx.total_amount_cents == 300000
    assert db.session.get(Product, dress.id).stock == 1


def test_invalid_input(make_product):
    dress = make_product()

    with pytest.raises(ValidationError):
        _sell(dress, type="gift")
    with pytest.raises(ValidationError):
        _sell(dress, quantity=0)
    with pytest.raises(ValidationError):
        _sell(dress, discount_percent=120)
    with pytest.raises(ValidationError):
        _sell(dress, customer_phone="")
    with pytest.raises(NotFoundError):
        sales_service.record_transaction(
            type="sale", product_id=999, customer_name="Karim", customer_phone="0550000002",
        )


def test_cancel_restocks_once(make_product):
    dress = make_product(stock=4)
    tx = _sell(dress, quantity=3)

    sales_service.cancel_transaction(tx.id)
    sales_service.cancel_transaction(tx.id)

    assert db.session.get(Transaction, tx.id).status == "cancelled"
    assert db.session.get(Product, dress.id).stock == 4


def test_cancel_unknown_transaction(db_session):
    with pytest.raises(NotFoundError):
        sales_service.cancel_transaction(404)


def test_list_transactions_filters(make_product):
    dress = make_product(stock=10)
    sale = _sell(dress)
    rental = _sell(dress, type="rental", customer_phone="0550000003")

    assert [t.id for t in sales_service.list_transactions(type="sale")] == [sale.id]
    assert [t.id for t in sales_service.list_transactions(customer_phone="0550000003")] == [rental.id]

    now = today()
    assert len(sales_service.list_transactions(date_from=now, date_to=now)) == 2
    assert sales_service.list_transactions(date_from=now + timedelta(days=1)) == []
    assert sales_service.list_transactions(date_to=now - timedelta(days=1)) == []

    with pytest.raises(ValidationError):
        sales_service.list_transactions(date_from="last week")
