"""
Pytest fixtures for tradebook backend tests.

Provides the test database, item/customer factories, and the test client.
"""

from datetime import date

import pytest

from tradebook import create_app
from tradebook.config import TestConfig
from tradebook.extensions import db
from tradebook.models import Customer, InventoryItem
from tradebook.services import order_service, purchase_service
from tradebook.services.commands import (
    CreateOrderCommand,
    CreatePurchaseCommand,
    OrderLineInput,
    PurchaseLineInput,
)


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
def make_item(db_session):
    """Factory for catalog items; stock and prices in units and cents."""
    counter = {"n": 0}

    def _make(stock_level=0, selling_price_cents=1000, unit_cost_cents=600, reorder_level=0, **kwargs):
        counter["n"] += 1
        item = InventoryItem(
            sku=kwargs.pop("sku", f"ITEM-{counter['n']:03d}"),
            name=kwargs.pop("name", f"Item {counter['n']}"),
            stock_level=stock_level,
            reorder_level=reorder_level,
            unit_cost_cents=unit_cost_cents,
            selling_price_cents=selling_price_cents,
            is_active=True,
            **kwargs,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(name="Asha Traders", balance_cents=0):
        customer = Customer(name=name, status="Active", balance_cents=balance_cents)
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def item(make_item):
    return make_item(stock_level=100, selling_price_cents=1000)


@pytest.fixture(scope='function')
def customer(make_customer):
    return make_customer()


@pytest.fixture(scope='function')
def place_order(db_session):
    """Create an order through the lifecycle for one item."""
    def _place(customer, item, quantity, *, price_cents=None, free_qty=0, paid_cents=0,
               discount_cents=0, order_date=None):
        return order_service.create_order(CreateOrderCommand(
            customer_id=customer.id,
            lines=[OrderLineInput(
                item_id=item.id,
                quantity=quantity,
                free_qty=free_qty,
                selling_price_cents=price_cents,
            )],
            discount_cents=discount_cents,
            amount_paid_cents=paid_cents,
            order_date=order_date or date(2024, 3, 1),
        ))

    return _place


@pytest.fixture(scope='function')
def place_purchase(db_session):
    def _place(item, quantity, unit_price_cents, *, supplier="Acme Supplies", purchase_date=None):
        return purchase_service.create_purchase(CreatePurchaseCommand(
            supplier_name=supplier,
            lines=[PurchaseLineInput(item_id=item.id, quantity=quantity, unit_price_cents=unit_price_cents)],
            purchase_date=purchase_date or date(2024, 3, 1),
        ))

    return _place
