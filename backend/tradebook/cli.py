# Overview: Flask CLI command groups for database bootstrap and master data.

# backend/tradebook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent). Use "flask db upgrade" for migrations.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Item catalog:
# - python -m flask items create --sku WIDGET-1 --name "Widget" --stock 10 --price-cents 1000
#   Create a catalog item with opening stock.
# - python -m flask items low-stock
#   List items that are out of stock or under their reorder level.
#
# Customers:
# - python -m flask customers create --name "Asha Traders" --opening-balance-cents -5000
#   Create a customer (negative opening balance = amount owed).
# - python -m flask customers list [--search asha]
#   List customers with their balances.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import customer_service, inventory_service
from .services.commands import CreateCustomerCommand, CreateItemCommand
from .validation import LedgerError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('items')
def items_group():
    """Item catalog commands."""


@items_group.command('create')
@click.option('--sku', required=True, help='Unique stock keeping unit')
@click.option('--name', required=True, help='Item name')
@click.option('--description', default=None, help='Optional description')
@click.option('--stock', 'stock_level', type=int, default=0, help='Opening stock level')
@click.option('--reorder-level', type=int, default=0, help='Low-stock threshold')
@click.option('--cost-cents', 'unit_cost_cents', type=int, default=0, help='Unit cost in cents')
@click.option('--price-cents', 'selling_price_cents', type=int, default=0, help='Selling price in cents')
@with_appcontext
def create_item(sku, name, description, stock_level, reorder_level, unit_cost_cents, selling_price_cents):
    """Create a catalog item."""
    try:
        item = inventory_service.create_item(CreateItemCommand(
            sku=sku,
            name=name,
            description=description,
            stock_level=stock_level,
            reorder_level=reorder_level,
            unit_cost_cents=unit_cost_cents,
            selling_price_cents=selling_price_cents,
        ))
    except LedgerError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created item {item.sku} (ID: {item.id}, stock: {item.stock_level})")


@items_group.command('low-stock')
@with_appcontext
def low_stock():
    """List items that are out of stock or under their reorder level."""
    items = inventory_service.list_low_stock_items()

    if not items:
        click.echo("No low-stock items.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'SKU':<16} {'Name':<30} {'Stock':>8} {'Reorder':>8}  {'Status'}")
    click.echo("="*80)

    for item in items:
        click.echo(
            f"{item.id:<6} {item.sku:<16} {item.name[:30]:<30} "
            f"{item.stock_level:>8} {item.reorder_level:>8}  {item.stock_status}"
        )

    click.echo("="*80 + "\n")


@click.group('customers')
def customers_group():
    """Customer directory commands."""


@customers_group.command('create')
@click.option('--name', required=True, help='Customer name')
@click.option('--email', default=None)
@click.option('--phone', default=None)
@click.option('--address', default=None)
@click.option('--opening-balance-cents', type=int, default=0, help='Negative = amount owed, positive = credit')
@with_appcontext
def create_customer(name, email, phone, address, opening_balance_cents):
    """Create a customer."""
    try:
        customer = customer_service.create_customer(CreateCustomerCommand(
            name=name,
            email=email,
            phone=phone,
            address=address,
            opening_balance_cents=opening_balance_cents,
        ))
    except LedgerError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created customer {customer.name} (ID: {customer.id}, balance: {customer.balance_cents})")


@customers_group.command('list')
@click.option('--search', default=None, help='Filter by name, phone or email')
@with_appcontext
def list_customers(search):
    """List customers with their balances."""
    customers = customer_service.list_customers(search=search)

    if not customers:
        click.echo("No customers found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'Name':<30} {'Phone':<16} {'Balance (cents)':>16}")
    click.echo("="*80)

    for customer in customers:
        click.echo(
            f"{customer.id:<6} {customer.name[:30]:<30} {(customer.phone or '-'):<16} "
            f"{customer.balance_cents:>16}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(items_group)
    app.cli.add_command(customers_group)
