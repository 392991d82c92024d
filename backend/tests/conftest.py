"""
Pytest fixtures for POS backend tests.

Provides an in-memory database, a per-test table wipe, a test client and
a small seeded catalog.
"""

import pytest

from posbackend import create_app
from posbackend.extensions import db
from posbackend.models import AccountingEntry, InventoryMovement, Sale
from posbackend.services import catalog_service


ACTOR_ID = 7


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_RETRY_BACKOFF': 0,
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
def product_p(db_session):
    """Price 10.00, tax 10%, cost 4.00, 5 on hand."""
    return catalog_service.create_product(
        sku="P-001",
        name="Product P",
        price_cents=1000,
        cost_cents=400,
        tax_rate_bps=1000,
        initial_quantity=5,
    )


@pytest.fixture(scope='function')
def product_q(db_session):
    """Price 2.50, untaxed, cost 1.00, 10 on hand."""
    return catalog_service.create_product(
        sku="Q-001",
        name="Product Q",
        price_cents=250,
        cost_cents=100,
        tax_rate_bps=0,
        initial_quantity=10,
    )


def sale_count() -> int:
    return db.session.query(Sale).count()


def entry_count() -> int:
    return db.session.query(AccountingEntry).count()


def movement_count() -> int:
    return db.session.query(InventoryMovement).count()


def actor_headers(actor_id: int = ACTOR_ID) -> dict:
    """Helper to create the upstream identity header."""
    return {'X-Actor-Id': str(actor_id)}
