"""
FIFO payment allocation tests.

Verifies:
- One payment is spread over open orders oldest-first
- Overflow beyond every open order stays on the account as credit
- Paid orders are skipped and ties on order_date fall back to order id
"""

from datetime import date

import pytest

from tradebook.extensions import db
from tradebook.models import Customer, Transaction
from tradebook.services import allocation_service, order_service
from tradebook.services.commands import AllocatePaymentCommand
from tradebook.validation import NotFoundError, ValidationError


@pytest.fixture
def two_open_orders(item, customer, place_order):
    """O1 due 5000 (older), O2 due 3000."""
    o1 = place_order(customer, item, 5, price_cents=1000, order_date=date(2024, 1, 10))
    o2 = place_order(customer, item, 3, price_cents=1000, order_date=date(2024, 2, 10))
    return o1, o2


def _allocate(customer, amount_cents, **kwargs):
    return allocation_service.allocate_customer_payment(AllocatePaymentCommand(
        customer_id=customer.id,
        amount_cents=amount_cents,
        **kwargs,
    ))


def test_fills_oldest_order_first(customer, two_open_orders):
    o1, o2 = two_open_orders

    receipt = _allocate(customer, 7000)

    assert [(a.order_id, a.amount_applied_cents) for a in receipt.applications] == [(o1.id, 5000), (o2.id, 2000)]
    assert receipt.credited_cents == 0

    o1, o2 = order_service.get_order(o1.id), order_service.get_order(o2.id)
    assert o1.payment_status == "Paid"
    assert o2.payment_status == "Partial"
    assert o2.due_cents == 1000
    assert receipt.customer.balance_cents == -1000


def test_overflow_becomes_credit(customer, two_open_orders):
    o1, o2 = two_open_orders

    receipt = _allocate(customer, 10000)

    assert receipt.allocated_cents == 8000
    assert receipt.credited_cents == 2000
    assert order_service.get_order(o1.id).payment_status == "Paid"
    assert order_service.get_order(o2.id).payment_status == "Paid"
    assert db.session.get(Customer, customer.id).balance_cents == 2000


def test_credit_only_payment_writes_no_journal_row(customer):
    receipt = _allocate(customer, 1500)

    assert receipt.applications == []
    assert receipt.credited_cents == 1500
    assert db.session.get(Customer, customer.id).balance_cents == 1500
    assert db.session.query(Transaction).count() == 0


def test_each_touched_order_keeps_one_journal_row(customer, two_open_orders):
    o1, o2 = two_open_orders

    _allocate(customer, 2000, payment_date=date(2024, 3, 1))
    _allocate(customer, 4000, payment_date=date(2024, 3, 2))

    rows = {tx.entity_id: tx for tx in db.session.query(Transaction).filter_by(type="order").all()}
    assert set(rows) == {o1.id, o2.id}
    assert rows[o1.id].amount_cents == 5000
    assert rows[o2.id].amount_cents == 1000
    assert rows[o2.id].date == date(2024, 3, 2)


def test_skips_paid_orders(item, customer, place_order):
    paid = place_order(customer, item, 1, price_cents=1000, paid_cents=1000, order_date=date(2024, 1, 1))
    open_order = place_order(customer, item, 2, price_cents=1000, order_date=date(2024, 1, 5))

    receipt = _allocate(customer, 500)

    assert [a.order_id for a in receipt.applications] == [open_order.id]
    assert order_service.get_order(paid.id).amount_paid_cents == 1000


def test_same_order_date_breaks_ties_by_id(item, customer, place_order):
    a = place_order(customer, item, 1, price_cents=1000, order_date=date(2024, 1, 1))
    b = place_order(customer, item, 1, price_cents=1000, order_date=date(2024, 1, 1))
    expected = sorted([a.id, b.id])

    receipt = _allocate(customer, 2000)

    assert [entry.order_id for entry in receipt.applications] == expected


def test_allocation_is_all_or_nothing(customer, two_open_orders, monkeypatch):
    o1, o2 = two_open_orders
    calls = {"n": 0}
    real_apply = allocation_service._apply_payment_locked

    def flaky_apply(order, amount_cents, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise ValidationError("simulated failure on second order")
        return real_apply(order, amount_cents, **kwargs)

    monkeypatch.setattr(allocation_service, "_apply_payment_locked", flaky_apply)

    with pytest.raises(ValidationError):
        _allocate(customer, 7000)

    assert order_service.get_order(o1.id).amount_paid_cents == 0
    assert order_service.get_order(o2.id).amount_paid_cents == 0
    assert db.session.get(Customer, customer.id).balance_cents == -8000
    assert db.session.query(Transaction).count() == 0


@pytest.mark.parametrize("amount", [0, -500])
def test_rejects_non_positive_amount(customer, amount):
    with pytest.raises(ValidationError):
        _allocate(customer, amount)


def test_unknown_customer(db_session):
    with pytest.raises(NotFoundError):
        allocation_service.allocate_customer_payment(AllocatePaymentCommand(customer_id=999, amount_cents=100))


def test_receipt_to_dict(customer, two_open_orders):
    o1, _ = two_open_orders

    data = _allocate(customer, 1000, payment_mode="UPI").to_dict()

    assert data["customer_id"] == customer.id
    assert data["allocated_cents"] == 1000
    assert data["credited_cents"] == 0
    assert data["balance_cents"] == -7000
    assert data["applications"] == [{"order_id": o1.id, "amount_applied_cents": 1000}]
