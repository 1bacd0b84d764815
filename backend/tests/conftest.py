"""
Pytest fixtures for HaliStock backend tests.

Provides an in-memory database, a test client and small factories for
products and rentals.
"""

import pytest
from halistock import create_app
from halistock.extensions import db
from halistock.models import Product
from halistock.services import rental_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOW_STOCK_THRESHOLD': 2,
        'STORE_NAME': 'HaliStock Boutique',
        'CURRENCY': 'DA',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name=..., stock=..., rental_price_per_day_cents=...)."""
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        values = {
            "name": f"Robe {counter['n']}",
            "category": "robes",
            "barcode": f"HS-T{counter['n']:04d}",
            "sale_price_cents": 1500000,
            "rental_price_per_day_cents": 100000,
            "stock": 5,
            "is_available_for_rental": True,
        }
        values.update(fields)
        product = Product(**values)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """A rentable product at 1000 DA per day."""
    return make_product(name="Robe de soirée", rental_price_per_day_cents=100000)


@pytest.fixture(scope='function')
def book(db_session):
    """Factory: book(product, start, end, **extra) -> committed Rental."""

    def _book(product, start, end, **extra):
        fields = {
            "customer_name": "Amina",
            "customer_phone": "0550000001",
        }
        fields.update(extra)
        return rental_service.commit_rental(
            product_id=product.id,
            start_date=start,
            end_date=end,
            **fields,
        )

    return _book

