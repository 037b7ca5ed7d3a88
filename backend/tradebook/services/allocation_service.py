# Overview: Payment Allocator; spreads one customer payment across open orders oldest-first.

"""
FIFO payment allocation

WHY: Customers settle their account with one payment rather than per order.
The payment is applied to their oldest unpaid orders first, and anything left
after every order is paid stays on the account as credit.

ALGORITHM:
1. Open orders (payment_status != Paid), oldest order_date first, ties by id
2. For each: pay = min(total - amount_paid, remaining), applied through the
   order lifecycle's standalone-payment path
3. Leftover -> pure credit on the customer balance (no order, no journal row)

ATOMICITY:
The whole allocation is a single DB transaction. If any per-order step fails,
or the caller abandons the request before commit, nothing is applied: no
order shows a payment that the balance does not, and vice versa.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Customer
from ..validation import NotFoundError, enforce_amount, enforce_payment_mode
from . import balance_service
from .commands import AllocatePaymentCommand
from .concurrency import lock_for_update, run_atomic
from .order_service import _apply_payment_locked, list_open_orders


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentApplication:
    order_id: str
    amount_applied_cents: int

    def to_dict(self) -> dict:
        return {"order_id": self.order_id, "amount_applied_cents": self.amount_applied_cents}


@dataclass
class AllocationReceipt:
    customer: Customer
    amount_cents: int
    applications: list[PaymentApplication] = field(default_factory=list)
    credited_cents: int = 0

    @property
    def allocated_cents(self) -> int:
        return sum(a.amount_applied_cents for a in self.applications)

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer.id,
            "amount_cents": self.amount_cents,
            "allocated_cents": self.allocated_cents,
            "credited_cents": self.credited_cents,
            "balance_cents": self.customer.balance_cents,
            "applications": [a.to_dict() for a in self.applications],
        }


def allocate_customer_payment(cmd: AllocatePaymentCommand) -> AllocationReceipt:
    """
    Apply one customer payment to their open orders, oldest first.

    Returns the per-order amounts applied and any credit left on the account.
    """
    amount = enforce_amount(cmd.amount_cents, "amount_cents", allow_zero=False)
    payment_mode = enforce_payment_mode(cmd.payment_mode, default=current_app.config.get("DEFAULT_PAYMENT_MODE"))

    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=cmd.customer_id)).first()
        if customer is None:
            raise NotFoundError(f"Customer {cmd.customer_id} not found", details={"customer_id": cmd.customer_id})

        receipt = AllocationReceipt(customer=customer, amount_cents=amount)
        remaining = amount

        for order in list_open_orders(customer.id, lock=True):
            if remaining <= 0:
                break
            pay = min(order.due_cents, remaining)
            if pay <= 0:
                continue

            _apply_payment_locked(order, pay, payment_mode=payment_mode, payment_date=cmd.payment_date)
            receipt.applications.append(PaymentApplication(order_id=order.id, amount_applied_cents=pay))
            remaining -= pay

        if remaining > 0:
            balance_service.apply_balance_delta(customer.id, remaining)
            receipt.credited_cents = remaining

        logger.info(
            "Allocated %s cents for customer %s across %s orders (credit %s)",
            amount, customer.id, len(receipt.applications), receipt.credited_cents,
        )
        return receipt

    receipt = run_atomic(_op)
    db.session.refresh(receipt.customer)
    return receipt
