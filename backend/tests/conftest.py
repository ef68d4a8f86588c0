"""
Pytest fixtures for the back-office ledger tests.

Provides the application on in-memory SQLite, a per-test clean database,
catalogue records and a stock helper.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Customer, InventoryHistory, Product, Tax, UnitQuantity, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SQLALCHEMY_ENGINE_OPTIONS': {},
        'ATOMIC_RETRY_BACKOFF': 0,
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


@pytest.fixture(scope='function')
def user(db_session):
    """Active operator used as the acting user."""
    user = User(name="Operator", email="operator@backoffice.local", role="admin")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def customer(db_session, user):
    customer = Customer(name="Budi", phone_number="08123456789", created_by=user.id)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def unit(db_session, user):
    unit = UnitQuantity(name="pcs", created_by=user.id)
    db_session.add(unit)
    db_session.commit()
    return unit


@pytest.fixture(scope='function')
def box_unit(db_session, user):
    unit = UnitQuantity(name="box", created_by=user.id)
    db_session.add(unit)
    db_session.commit()
    return unit


@pytest.fixture(scope='function')
def product(db_session, user):
    product = Product(name="Widget", type="SELLABLE", created_by=user.id)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def other_product(db_session, user):
    product = Product(name="Gadget", type="SELLABLE", created_by=user.id)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def tax(db_session, user):
    """8 % flat tax."""
    tax = Tax(name="VAT 8%", value=Decimal("8"), created_by=user.id)
    db_session.add(tax)
    db_session.commit()
    return tax


@pytest.fixture(scope='function')
def add_stock(db_session, user):
    """Append a ledger row directly: add_stock(product, unit, qty, at=None)."""
    def _add(product, unit, quantity, at: datetime | None = None, remark="Opening stock"):
        entry = InventoryHistory(
            product_id=product.id,
            unit_quantity_id=unit.id,
            quantity=Decimal(str(quantity)),
            remark=remark,
            created_by=user.id,
        )
        if at is not None:
            entry.created_at = at
        db_session.add(entry)
        db_session.commit()
        return entry

    return _add


def actor_headers(user) -> dict:
    """Helper to create the acting-user header."""
    return {'X-User-Id': str(user.id)}


def sell_payload(product, unit, quantity, price, **extra) -> dict:
    """Helper for a one-line SELL request."""
    payload = {
        "type": "SELL",
        "items": [
            {
                "product_id": product.id,
                "unit_quantity_id": unit.id,
                "quantity": quantity,
                "price_per_unit": price,
            }
        ],
    }
    payload.update(extra)
    return payload
