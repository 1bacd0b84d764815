from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from halistock.services import availability_service, rental_service
from halistock.time_utils import today
from halistock.validation import InvalidAmountError, ValidationError


def _boom(*args, **kwargs):
    raise OperationalError("SELECT rental_calendar", {}, Exception("database is locked"))


def test_empty_calendar_is_free(product):
    assert availability_service.is_range_free(product.id, date(2024, 6, 1), date(2024, 6, 30))


def test_booked_day_is_not_free(product, book):
    book(product, date(2024, 6, 10), date(2024, 6, 10))

    assert not availability_service.is_range_free(product.id, date(2024, 6, 10), date(2024, 6, 10))
    assert not availability_service.is_range_free(product.id, "2024-06-09", "2024-06-11")
    assert availability_service.is_range_free(product.id, date(2024, 6, 11), date(2024, 6, 12))
    assert availability_service.is_range_free(product.id, date(2024, 6, 1), date(2024, 6, 9))


def test_other_products_are_unaffected(product, make_product, book):
    other = make_product(name="Costume")
    book(product, date(2024, 6, 10), date(2024, 6, 12))

    assert availability_service.is_range_free(other.id, date(2024, 6, 10), date(2024, 6, 12))


def test_start_after_end_is_rejected(product):
    with pytest.raises(InvalidAmountError):
        availability_service.is_range_free(product.id, date(2024, 6, 12), date(2024, 6, 10))


def test_unparseable_date_is_rejected(product):
    with pytest.raises(ValidationError):
        availability_service.is_range_free(product.id, "tomorrow", "2024-06-10")


def test_month_view_with_one_reserved_day(product, book):
    book(product, date(2024, 6, 10), date(2024, 6, 10))

    result = availability_service.month_availability(product.id, "2024-06")

    assert result["month"] == "2024-06"
    assert len(result["available_dates"]) == 29
    assert result["reserved_dates"] == [date(2024, 6, 10)]
    assert result["is_available"] is True


def test_month_view_partitions_the_month(product, book):
    book(product, date(2024, 2, 27), date(2024, 3, 2))

    result = availability_service.month_availability(product.id, date(2024, 2, 15))
    days = sorted(result["available_dates"] + result["reserved_dates"])

    # 2024 is a leap year
    assert len(days) == 29
    assert days[0] == date(2024, 2, 1) and days[-1] == date(2024, 2, 29)
    assert result["reserved_dates"] == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29)]


def test_fully_booked_month_is_unavailable(product, book):
    book(product, date(2023, 2, 1), date(2023, 2, 28))

    result = availability_service.month_availability(product.id, "2023-02")

    assert result["available_dates"] == []
    assert result["is_available"] is False


def test_invalid_month_is_rejected(product):
    with pytest.raises(ValidationError):
        availability_service.month_availability(product.id, "2024-13")


def test_month_defaults_to_current_month(product):
    current = today().strftime("%Y-%m")

    assert availability_service.month_availability(product.id)["month"] == current
    assert availability_service.month_availability(product.id, None)["month"] == current
    assert availability_service.month_availability(product.id, "  ")["month"] == current


def test_serialize_month_uses_iso_days(product, book):
    book(product, date(2024, 6, 10), date(2024, 6, 10))

    data = availability_service.serialize_month(availability_service.month_availability(product.id, "2024-06"))

    assert data["reserved_dates"] == ["2024-06-10"]
    assert data["available_dates"][0] == "2024-06-01"


def test_released_days_are_available_again(product, book):
    rental = book(product, date(2024, 6, 10), date(2024, 6, 12))
    rental_service.release_rental(rental.id)

    assert availability_service.is_range_free(product.id, date(2024, 6, 10), date(2024, 6, 12))
    result = availability_service.month_availability(product.id, "2024-06")
    assert result["reserved_dates"] == []


def test_reads_fail_open_when_store_errors(product, book, monkeypatch):
    book(product, date(2024, 6, 10), date(2024, 6, 10))
    monkeypatch.setattr(availability_service, "reserved_days", _boom)

    assert availability_service.is_range_free(product.id, date(2024, 6, 10), date(2024, 6, 10))
    result = availability_service.month_availability(product.id, "2024-06")
    assert len(result["available_dates"]) == 30
    assert result["reserved_dates"] == []
