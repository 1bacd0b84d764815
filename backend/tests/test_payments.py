from datetime import date

import pytest

from halistock.extensions import db
from halistock.models import Payment, Rental
from halistock.services import payment_service, rental_service, sales_service
from halistock.validation import ConflictError, InvalidAmountError, ValidationError


@pytest.fixture
def rental_500(product, book):
    """Active rental worth 500 cents, nothing paid yet."""
    return book(product, date(2024, 6, 10), date(2024, 6, 10), total_amount_cents=500, amount_paid_cents=0)


def _triple(result):
    return result["amount_paid_cents"], result["remaining_amount_cents"], result["payment_status"]


def test_balance_scenario_with_overpayment(rental_500):
    first = payment_service.apply_payment(rental_500.id, "rental", 200)
    assert _triple(first) == (200, 300, "partial")

    second = payment_service.apply_payment(rental_500.id, "rental", 300)
    assert _triple(second) == (500, 0, "completed")

    third = payment_service.apply_payment(rental_500.id, "rental", 50)
    assert _triple(third) == (550, 0, "completed")

    rental = db.session.get(Rental, rental_500.id)
    assert (rental.amount_paid_cents, rental.remaining_amount_cents, rental.payment_status) == (550, 0, "completed")


def test_split_payments_equal_single_payment(product, book):
    split = book(product, date(2024, 6, 10), date(2024, 6, 10), total_amount_cents=100, amount_paid_cents=0)
    single = book(product, date(2024, 6, 11), date(2024, 6, 11), total_amount_cents=100, amount_paid_cents=0)

    payment_service.apply_payment(split.id, "rental", 30)
    split_result = payment_service.apply_payment(split.id, "rental", 20)
    single_result = payment_service.apply_payment(single.id, "rental", 50)

    assert _triple(split_result) == _triple(single_result) == (50, 50, "partial")


def test_status_is_monotone_and_remaining_never_negative(rental_500):
    order = {"pending": 0, "partial": 1, "completed": 2}
    seen = [rental_500.payment_status]

    for amount in (1, 99, 150, 400, 7):
        result = payment_service.apply_payment(rental_500.id, "rental", amount)
        assert result["remaining_amount_cents"] >= 0
        seen.append(result["payment_status"])

    ranks = [order[s] for s in seen]
    assert ranks == sorted(ranks)
    assert seen[0] == "pending" and seen[-1] == "completed"


@pytest.mark.parametrize("amount", [0, -10, "abc", None, True])
def test_non_positive_or_malformed_amount_is_rejected(rental_500, amount):
    with pytest.raises(ValidationError):
        payment_service.apply_payment(rental_500.id, "rental", amount)

    assert db.session.get(Rental, rental_500.id).amount_paid_cents == 0
    assert db.session.query(Payment).count() == 0


def test_zero_amount_is_an_invalid_amount(rental_500):
    with pytest.raises(InvalidAmountError):
        payment_service.apply_payment(rental_500.id, "rental", 0)


def test_missing_target_is_a_no_op(db_session):
    assert payment_service.apply_payment(12345, "rental", 100) is None
    assert payment_service.apply_payment(12345, "transaction", 100) is None
    assert db.session.query(Payment).count() == 0


def test_cancelled_target_is_rejected(rental_500):
    rental_service.cancel_rental(rental_500.id)

    with pytest.raises(ConflictError):
        payment_service.apply_payment(rental_500.id, "rental", 100)


def test_unknown_kind_and_method(rental_500):
    with pytest.raises(ValidationError):
        payment_service.apply_payment(rental_500.id, "invoice", 100)
    with pytest.raises(ValidationError):
        payment_service.apply_payment(rental_500.id, "rental", 100, method="cheque")


def test_ledger_rows_snapshot_the_balance(rental_500):
    payment_service.apply_payment(rental_500.id, "rental", 200, method="card", agent_name="Sara")
    payment_service.apply_payment(rental_500.id, "rental", 300, notes="solde")

    rows = payment_service.list_payments(rental_id=rental_500.id)

    assert [(p.amount_paid_cents, p.remaining_amount_cents, p.is_completed) for p in rows] == [
        (200, 300, False),
        (300, 0, True),
    ]
    assert rows[0].payment_method == "card"
    assert rows[0].agent_name == "Sara"
    assert rows[1].notes == "solde"
    assert rows[0].customer_phone == "0550000001"


def test_payment_on_a_sale(product):
    tx = sales_service.record_transaction(
        type="sale",
        product_id=product.id,
        customer_name="Karim",
        customer_phone="0550000002",
        quantity=1,
        unit_price_cents=1000,
        amount_paid_cents=0,
    )
    assert tx.payment_status == "pending"

    result = payment_service.apply_payment(tx.id, "transaction", 1000, method="transfer")

    assert _triple(result) == (1000, 0, "completed")
    assert result["payment"].transaction_id == tx.id
    assert result["payment"].rental_id is None


def test_payment_summary(rental_500):
    payment_service.apply_payment(rental_500.id, "rental", 200)

    summary = payment_service.get_payment_summary("rental", rental_500.id)

    assert summary["total_amount_cents"] == 500
    assert summary["amount_paid_cents"] == 200
    assert summary["remaining_amount_cents"] == 300
    assert summary["payment_status"] == "partial"
    assert [p["amount_paid_cents"] for p in summary["payments"]] == [200]
    assert payment_service.get_payment_summary("rental", 999) is None


def test_compute_balance():
    assert payment_service.compute_balance(500, 0) == (500, "pending")
    assert payment_service.compute_balance(500, 200) == (300, "partial")
    assert payment_service.compute_balance(500, 500) == (0, "completed")
    assert payment_service.compute_balance(500, 900) == (0, "completed")
    # Free items are settled from the start
    assert payment_service.compute_balance(0, 0) == (0, "completed")
