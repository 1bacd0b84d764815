from datetime import date, timedelta

from halistock.services import reporting_service, rental_service, sales_service
from halistock.time_utils import today


def test_stats_counts_and_revenue(make_product, book):
    dress = make_product(stock=3, sale_price_cents=1000, rental_price_per_day_cents=500)
    make_product(stock=10)

    sales_service.record_transaction(
        type="sale", product_id=dress.id, customer_name="Karim", customer_phone="0550000002",
        amount_paid_cents=400,
    )
    cancelled = sales_service.record_transaction(
        type="sale", product_id=dress.id, customer_name="Karim", customer_phone="0550000002",
    )
    sales_service.cancel_transaction(cancelled.id)
    sales_service.record_transaction(
        type="rental", product_id=dress.id, customer_name="Karim", customer_phone="0550000002",
    )

    now = today()
    late = book(dress, now - timedelta(days=5), now - timedelta(days=2))
    book(dress, now, now + timedelta(days=1), amount_paid_cents=100)
    returned = book(dress, now + timedelta(days=3), now + timedelta(days=3))
    rental_service.release_rental(returned.id)

    stats = reporting_service.get_stats()

    assert stats["total_sales"] == 1
    # one rental transaction plus three rentals booked directly
    assert stats["total_rentals"] == 4
    # sale 400 + rental transaction 500 + rentals 2000 + 100 + 500
    assert stats["revenue_cents"] == 400 + 500 + 2000 + 100 + 500
    assert stats["total_products"] == 2
    # dress went 3 -> 2 after the sale (the cancelled one was restocked)
    assert stats["low_stock_items"] == 1
    assert stats["active_rentals"] == 2
    assert stats["pending_returns"] == 2
    assert stats["overdue_rentals"] == 1
    assert late.id is not None


def test_rentals_booked_without_transaction_are_counted(product, book):
    now = today()
    book(product, now, now + timedelta(days=1))
    book(product, now + timedelta(days=2), now + timedelta(days=2), amount_paid_cents=0)
    dropped = book(product, now + timedelta(days=5), now + timedelta(days=5))
    rental_service.cancel_rental(dropped.id)

    stats = reporting_service.get_stats()

    assert stats["total_rentals"] == 2
    assert stats["active_rentals"] == 2
    assert stats["revenue_cents"] == 200000


def test_stats_window_is_inclusive_of_end_day(make_product):
    dress = make_product(stock=5)
    sales_service.record_transaction(
        type="sale", product_id=dress.id, customer_name="Karim", customer_phone="0550000002",
    )
    now = today()

    assert reporting_service.get_stats(date_from=now, date_to=now)["total_sales"] == 1
    assert reporting_service.get_stats(date_to=now.isoformat())["total_sales"] == 1
    assert reporting_service.get_stats(date_from=now + timedelta(days=1))["total_sales"] == 0
    assert reporting_service.get_stats(date_to=now - timedelta(days=1))["revenue_cents"] == 0


def test_overdue_uses_given_today(product, book):
    book(product, date(2024, 6, 1), date(2024, 6, 3))

    assert reporting_service.get_stats(today=date(2024, 6, 3))["overdue_rentals"] == 0
    assert reporting_service.get_stats(today=date(2024, 6, 4))["overdue_rentals"] == 1


def test_empty_store(db_session):
    stats = reporting_service.get_stats()

    assert stats == {
        "total_sales": 0,
        "total_rentals": 0,
        "revenue_cents": 0,
        "low_stock_items": 0,
        "total_products": 0,
        "active_rentals": 0,
        "overdue_rentals": 0,
        "pending_returns": 0,
    }
