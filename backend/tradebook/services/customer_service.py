# Overview: Customer directory; customer master data and balance lookups (balance writes go through balance_service).

from __future__ import annotations

import logging

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Order
from ..validation import NotFoundError, ValidationError, optional_text, require_text
from .commands import CreateCustomerCommand, UpdateCustomerCommand
from .concurrency import lock_for_update, run_atomic
from .order_service import list_open_orders


logger = logging.getLogger(__name__)

CUSTOMER_STATUSES = ("Active", "Inactive")


def create_customer(cmd: CreateCustomerCommand) -> Customer:
    """Add a customer, optionally carrying an opening balance from another system."""
    name = require_text(cmd.name, "name")
    if not isinstance(cmd.opening_balance_cents, int) or isinstance(cmd.opening_balance_cents, bool):
        raise ValidationError("opening_balance_cents must be an integer")

    def _op():
        customer = Customer(
            name=name,
            email=optional_text(cmd.email),
            phone=optional_text(cmd.phone),
            address=optional_text(cmd.address),
            status="Active",
            balance_cents=cmd.opening_balance_cents,
        )
        db.session.add(customer)
        db.session.flush()
        logger.info("Created customer %s (%s)", customer.name, customer.id)
        return customer

    return run_atomic(_op)


def _load_customer_locked(customer_id: int) -> Customer:
    customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer


def update_customer(cmd: UpdateCustomerCommand) -> Customer:
    """
    Edit contact details or status. None keeps the committed value.

    Existing orders keep the customer name they were recorded with.
    """
    name = require_text(cmd.name, "name") if cmd.name is not None else None
    if cmd.status is not None and cmd.status not in CUSTOMER_STATUSES:
        raise ValidationError(
            f"Invalid customer status: {cmd.status}. Must be one of {list(CUSTOMER_STATUSES)}"
        )

    def _op():
        customer = _load_customer_locked(cmd.customer_id)
        if name is not None:
            customer.name = name
        if cmd.email is not None:
            customer.email = optional_text(cmd.email)
        if cmd.phone is not None:
            customer.phone = optional_text(cmd.phone)
        if cmd.address is not None:
            customer.address = optional_text(cmd.address)
        if cmd.status is not None:
            customer.status = cmd.status

        db.session.flush()
        logger.info("Updated customer %s (%s)", customer.name, customer.id)
        return customer

    return run_atomic(_op)


def delete_customer(customer_id: int) -> None:
    """Delete a customer with no orders and a settled balance."""
    def _op():
        customer = _load_customer_locked(customer_id)

        order_count = db.session.query(Order.id).filter_by(customer_id=customer.id).count()
        if order_count:
            raise ValidationError(
                f"Customer {customer.name} has orders; delete them first",
                details={"customer_id": customer.id, "orders": order_count},
            )
        if customer.balance_cents != 0:
            raise ValidationError(
                f"Customer {customer.name} has an unsettled balance",
                details={"customer_id": customer.id, "balance_cents": customer.balance_cents},
            )

        name = customer.name
        db.session.delete(customer)
        db.session.flush()
        logger.info("Deleted customer %s (%s)", name, customer_id)

    run_atomic(_op)


def get_customer(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer


def list_customers(*, search: str | None = None) -> list[Customer]:
    q = db.session.query(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern), Customer.email.ilike(pattern)))
    return q.order_by(Customer.name, Customer.id).all()


def get_customer_statement(customer_id: int) -> dict:
    """Current balance plus every open order and what is still due on it, oldest first."""
    customer = get_customer(customer_id)
    open_orders = list_open_orders(customer.id)
    return {
        "customer": customer.to_dict(),
        "balance_cents": customer.balance_cents,
        "open_due_cents": sum(o.due_cents for o in open_orders),
        "open_orders": [
            {
                "order_id": o.id,
                "document_number": o.document_number,
                "order_date": o.order_date.isoformat(),
                "total_cents": o.total_cents,
                "amount_paid_cents": o.amount_paid_cents,
                "due_cents": o.due_cents,
                "payment_status": o.payment_status,
            }
            for o in open_orders
        ],
    }
