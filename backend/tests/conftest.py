"""
Pytest fixtures for barpos backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

import pytest
from barpos import create_app
from barpos.config import TestConfig
from barpos.extensions import db
from barpos.models import Tenant, Table
from barpos.services import products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def tenant_a(db_session):
    """Create Tenant A (first venue)."""
    tenant = Tenant(name="Tenant A - Harbour Bar", slug="harbour-bar", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second venue)."""
    tenant = Tenant(name="Tenant B - Rooftop", slug="rooftop", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def table_a(db_session, tenant_a):
    """Create an active table in Tenant A."""
    table = Table(tenant_id=tenant_a.id, number=1, label="Window", is_active=True)
    db_session.add(table)
    db_session.commit()
    return table


def make_product(tenant_id: int, name: str, price_cents: int = 500, stock: int = 0, **extra):
    """Helper to create a product through the service (initial stock is a RESTOCK movement)."""
    patch = {"name": name, "price_cents": price_cents, "stock_quantity": stock}
    patch.update(extra)
    return products_service.create_product(tenant_id=tenant_id, patch=patch)


@pytest.fixture(scope='function')
def product_factory(db_session):
    """Factory fixture wrapping make_product."""
    return make_product


@pytest.fixture(scope='function')
def beer(db_session, tenant_a):
    """Product in Tenant A with 10 in stock at 350 cents."""
    return make_product(tenant_a.id, "Beer", price_cents=350, stock=10)


@pytest.fixture(scope='function')
def wine(db_session, tenant_a):
    """Product in Tenant A with 4 in stock at 700 cents."""
    return make_product(tenant_a.id, "Wine", price_cents=700, stock=4)


@pytest.fixture(scope='function')
def product_b(db_session, tenant_b):
    """Product in Tenant B."""
    return make_product(tenant_b.id, "Cider", price_cents=400, stock=8)
