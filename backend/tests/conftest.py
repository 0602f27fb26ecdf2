"""
Pytest fixtures for backoffice tests.

Provides an in-memory application, a per-test clean database, a test client
and small catalog factories.
"""

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Product, Variant, Order, OrderItem, SalesRecord, OrderStatusLog
from backoffice.services.concurrency import run_atomic
from backoffice.services.stock_service import receive_stock


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'FREE_DELIVERY_MIN_QTY': 3,
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
def product(db_session):
    """Tee with a default price of 100 and cost of 40."""
    product = Product(name="Oversized Tee", sku="TEE-001", price_cents=100, cost_price_cents=40)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def make_variant(db_session, product):
    """Factory: make_variant(qty=5, size="M", color="Black", price_cents=None)."""
    counter = {"n": 0}

    def _make(qty=5, size="M", color=None, price_cents=None, cost_cents=None):
        counter["n"] += 1
        variant = Variant(
            product_id=product.id,
            size=size,
            color=color or f"Color-{counter['n']}",
            quantity_on_hand=0,
            selling_price_cents=price_cents,
            cost_price_cents=cost_cents,
        )
        db_session.add(variant)
        db_session.commit()
        variant_id = variant.id
        run_atomic(lambda: receive_stock(variant_id, qty))
        return variant

    return _make


@pytest.fixture(scope='function')
def variant(make_variant):
    """Variant V from the lifecycle scenario: stock 5, price 100."""
    return make_variant(qty=5, price_cents=100)


def order_payload(variant_id, quantity=2, unit_price_cents=100, status="Pending", **overrides) -> dict:
    """Minimal valid create/edit payload for one line."""
    payload = {
        "payment_status": status,
        "order_date": "2026-10-01T10:00:00Z",
        "items": [
            {"variant_id": variant_id, "quantity": quantity, "unit_price_cents": unit_price_cents},
        ],
        "manual_discount_cents": 0,
        "delivery_saving_cents": 0,
    }
    payload.update(overrides)
    return payload


def stock_of(variant_id) -> int:
    return db.session.get(Variant, variant_id).quantity_on_hand


def sales_for(order_id) -> list:
    return db.session.query(SalesRecord).filter_by(order_id=order_id).order_by(SalesRecord.id).all()


def logs_for(order_id) -> list:
    return db.session.query(OrderStatusLog).filter_by(order_id=order_id).order_by(OrderStatusLog.id).all()


def items_for(order_id) -> list:
    return db.session.query(OrderItem).filter_by(order_id=order_id).order_by(OrderItem.id).all()


def order_count() -> int:
    return db.session.query(Order).count()
