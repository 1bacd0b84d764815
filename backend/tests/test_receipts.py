from datetime import date, datetime

import pytest

from halistock.services import receipt_service, sales_service
from halistock.validation import NotFoundError, ValidationError

ISSUED = datetime(2024, 6, 10, 9, 30)


@pytest.fixture
def counter_visit(make_product, book):
    """One customer buys a scarf and rents a dress for three days."""
    scarf = make_product(name="Foulard", barcode="HS-0003", sale_price_cents=12000, stock=4)
    dress = make_product(name="Robe bleue", barcode="HS-0001", rental_price_per_day_cents=100000)

    sale = sales_service.record_transaction(
        type="sale", product_id=scarf.id, quantity=2, discount_percent=10,
        customer_name="Amina", customer_phone="0550000001", customer_email="amina@example.com",
        agent_name="Sara",
    )
    rental = book(dress, date(2024, 6, 10), date(2024, 6, 12), amount_paid_cents=100000)
    return sale, rental


def test_build_receipt(app, counter_visit):
    sale, rental = counter_visit

    receipt = receipt_service.build_receipt([sale.id], [rental.id], issued_at=ISSUED)

    assert receipt["receipt_number"] == "REC-1718011800000"
    assert receipt["issued_at"] == "2024-06-10T09:30:00Z"
    assert receipt["agent_name"] == "Sara"
    assert receipt["store"]["name"] == app.config["STORE_NAME"]
    assert receipt["currency"] == "DA"
    assert receipt["customer"] == {"name": "Amina", "phone": "0550000001", "email": "amina@example.com"}

    scarf_line, dress_line = receipt["items"]
    assert scarf_line["type"] == "sale"
    assert scarf_line["quantity"] == 2
    assert scarf_line["discount_amount_cents"] == 2400
    assert scarf_line["line_total_cents"] == 21600
    assert scarf_line["barcode"] == "HS-0003"
    assert dress_line["type"] == "rental"
    assert dress_line["rental_days"] == 3
    assert dress_line["line_total_cents"] == 300000

    assert receipt["total_cents"] == 321600
    assert receipt["total_discount_cents"] == 2400
    assert receipt["subtotal_cents"] == 324000
    assert receipt["amount_paid_cents"] == 21600 + 100000
    assert receipt["remaining_amount_cents"] == 200000
    assert receipt["returns"] == [{"name": "Robe bleue", "return_date": "2024-06-13"}]


def test_receipt_number_and_agent_override(counter_visit):
    sale, _ = counter_visit

    receipt = receipt_service.build_receipt([sale.id], agent_name="Nadia", receipt_number="REC-42")

    assert receipt["receipt_number"] == "REC-42"
    assert receipt["agent_name"] == "Nadia"
    assert receipt["returns"] == []


def test_linked_rental_is_not_printed_twice(make_product, book):
    dress = make_product(name="Robe bleue", rental_price_per_day_cents=100000)
    tx = sales_service.record_transaction(
        type="rental", product_id=dress.id, quantity=2, customer_name="Amina", customer_phone="0550000001",
    )
    rental = book(dress, date(2024, 6, 10), date(2024, 6, 11), transaction_id=tx.id)

    receipt = receipt_service.build_receipt([tx.id], [rental.id])

    assert len(receipt["items"]) == 1
    assert receipt["items"][0]["rental_days"] == 2
    assert receipt["items"][0]["return_date"] == "2024-06-12"
    assert receipt["total_cents"] == 200000


def test_mixed_customers_are_rejected(make_product, counter_visit):
    sale, _ = counter_visit
    other = sales_service.record_transaction(
        type="sale", product_id=make_product().id, customer_name="Karim", customer_phone="0550000002",
    )

    with pytest.raises(ValidationError):
        receipt_service.build_receipt([sale.id, other.id])


def test_empty_and_unknown(db_session):
    with pytest.raises(ValidationError):
        receipt_service.build_receipt()
    with pytest.raises(NotFoundError):
        receipt_service.build_receipt([404])


def test_render_text(counter_visit):
    sale, rental = counter_visit
    receipt = receipt_service.build_receipt([sale.id], [rental.id], issued_at=ISSUED)

    text = receipt_service.render_receipt_text(receipt)
    lines = text.splitlines()

    assert all(len(line) <= receipt_service.RECEIPT_WIDTH for line in lines)
    assert "Receipt: REC-1718011800000" in text
    assert "Customer: Amina" in text
    assert "Email: amina@example.com" in text
    assert "Rental (3d)" in text
    assert "Code: HS-0003" in text
    assert any(line.startswith("TOTAL") and line.endswith("3216.00 DA") for line in lines)
    assert any(line.startswith("Discount") and line.endswith("-24.00 DA") for line in lines)
    assert any(line.startswith("Balance due") and line.endswith("2000.00 DA") for line in lines)
    assert any(line.startswith("Robe bleue") and line.endswith("2024-06-13") for line in lines)


def test_format_money():
    assert receipt_service.format_money(100000, "DA") == "1000.00 DA"
    assert receipt_service.format_money(5, "DA") == "0.05 DA"
    assert receipt_service.format_money(-2400, "DA") == "-24.00 DA"
