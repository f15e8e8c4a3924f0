"""
Pytest fixtures for retail ledger tests.

Provides the test database, business/product fixtures, and test client.
"""

import pytest

from retail_ledger import create_app
from retail_ledger.extensions import db
from retail_ledger.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ENFORCE_STOCK_LEVELS': True,
        'PAYMENT_METHODS': ('CASH', 'CARD'),
        'LOW_STOCK_THRESHOLD': 10,
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
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        app.config['ENFORCE_STOCK_LEVELS'] = True


@pytest.fixture(scope='function')
def business(db_session):
    """Business A in tenant acme."""
    return inventory_service.create_business("acme", "Main Street", "12 Main St")


@pytest.fixture(scope='function')
def other_business(db_session):
    """Business B in another tenant."""
    return inventory_service.create_business("beta", "Harbour Kiosk")


@pytest.fixture(scope='function')
def make_product(db_session, business):
    """Factory: product in business A, stock posted through the ledger."""
    counter = {"n": 0}

    def _make(stock=50, cost=60, price=100, sku=None, business_id=None):
        counter["n"] += 1
        return inventory_service.create_product(
            business_id=business_id or business.id,
            sku=sku or f"SKU-{counter['n']:03d}",
            name=f"Product {counter['n']}",
            cost_price_cents=cost,
            sale_price_cents=price,
            initial_stock=stock,
            actor="fixture",
        )

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Product with stock 50, cost 60, price 100."""
    return make_product(stock=50, cost=60, price=100, sku="COLA-330")


@pytest.fixture(scope='function')
def staff_headers():
    """Headers the presentation layer sends for a STAFF user."""
    return {"X-Actor": "alice", "X-Actor-Role": "STAFF"}


@pytest.fixture(scope='function')
def viewer_headers():
    """Headers for a VIEW_ONLY user."""
    return {"X-Actor": "victor", "X-Actor-Role": "VIEW_ONLY"}
