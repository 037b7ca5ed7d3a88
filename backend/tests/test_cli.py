"""
CLI command tests (flask items / customers / system groups).
"""

from tradebook.extensions import db
from tradebook.models import Customer, InventoryItem


def test_items_create_and_low_stock(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "items", "create", "--sku", "pen-1", "--name", "Blue Pen",
        "--stock", "2", "--reorder-level", "10", "--price-cents", "500",
    ])
    assert result.exit_code == 0, result.output
    assert "Created item PEN-1" in result.output

    item = db.session.query(InventoryItem).filter_by(sku="PEN-1").one()
    assert item.stock_level == 2
    assert item.selling_price_cents == 500

    result = runner.invoke(args=["items", "low-stock"])
    assert result.exit_code == 0
    assert "PEN-1" in result.output
    assert "Low Stock" in result.output


def test_items_create_duplicate_sku_fails(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["items", "create", "--sku", "PEN-1", "--name", "Blue Pen"])

    result = runner.invoke(args=["items", "create", "--sku", "PEN-1", "--name", "Again"])

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_customers_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "customers", "create", "--name", "Asha Traders", "--opening-balance-cents", "-5000",
    ])
    assert result.exit_code == 0, result.output
    assert db.session.query(Customer).filter_by(name="Asha Traders").one().balance_cents == -5000

    result = runner.invoke(args=["customers", "list", "--search", "asha"])
    assert "Asha Traders" in result.output
    assert "-5000" in result.output


def test_customers_list_empty(app, db_session):
    result = app.test_cli_runner().invoke(args=["customers", "list"])
    assert "No customers found." in result.output


def test_system_init_db_is_idempotent(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init-db"])
    assert result.exit_code == 0
    assert "Database schema ready" in result.output
