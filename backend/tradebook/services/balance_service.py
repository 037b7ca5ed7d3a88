# Overview: Customer Balance Ledger; the only writer of Customer.balance_cents.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..validation import ValidationError
from .concurrency import lock_for_update


def apply_balance_delta(customer_id: int, delta_cents: int) -> int:
    """
    Add delta_cents to the customer's balance and return the new balance.

    Positive: customer gains credit / owes less (payments, order reversals).
    Negative: customer owes more (new orders).
    Does not commit; runs inside the caller's transaction.
    """
    customer = (
        lock_for_update(db.session.query(Customer).filter_by(id=customer_id))
        .populate_existing()
        .first()
    )
    if customer is None:
        raise ValidationError(f"Customer {customer_id} not found", details={"customer_id": customer_id})

    if delta_cents:
        customer.balance_cents = customer.balance_cents + delta_cents
        db.session.flush()
    return customer.balance_cents
