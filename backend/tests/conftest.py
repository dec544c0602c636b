"""
Pytest fixtures for PaintLedger backend tests.

Provides the test application (in-memory SQLite), a per-test table wipe,
the Flask test client and a `store` fixture that runs each test once
against MemoryStore and once against SqlStore.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from paintledger import create_app
from paintledger.extensions import db
from paintledger.services import customers_service, products_service
from paintledger.store import MemoryStore, SqlStore
from paintledger.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RECORD_STORE': 'sql',
        'OVERDUE_AFTER_DAYS': 30,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', params=['memory', 'sql'])
def store(request, db_session):
    """Record store under test; every test using it runs against both backends."""
    if request.param == 'memory':
        return MemoryStore()
    return SqlStore(db)


@pytest.fixture(scope='function')
def customer(store):
    """A store customer with no prior documents."""
    return customers_service.create_customer(store, {
        "name": "Atlas Hardware",
        "classification": "store",
        "phone": "+30 210 555 0100",
        "address": "12 Harbour Road",
    })


@pytest.fixture(scope='function')
def other_customer(store):
    return customers_service.create_customer(store, {
        "name": "Municipal Schools Board",
        "classification": "institution",
        "discount_percentage": "5",
    })


@pytest.fixture(scope='function')
def product(store):
    """Facade paint at 10.00 with 20 units on hand."""
    return products_service.create_product(store, {
        "name": "Elastomeric Facade White 10L",
        "category": "external_facades",
        "color_or_batch": "RAL 9010 / B-2291",
        "price": Decimal("10.00"),
        "stock": 20,
    })


@pytest.fixture(scope='function')
def second_product(store):
    return products_service.create_product(store, {
        "name": "Tile Adhesive 25kg",
        "category": "construction",
        "price": "7.50",
        "stock": 50,
    })


@pytest.fixture(scope='function')
def days_ago():
    """Factory for UTC-naive timestamps in the past."""
    def _days_ago(days: int):
        return utcnow() - timedelta(days=days)
    return _days_ago
