"""
Order lifecycle tests.

Verifies:
- Orders consume stock (free units included) and charge the customer balance
- Delete restores stock and balance exactly
- Editing with unchanged inputs is a no-op on stock, balance, total and status
- Standalone payments update the order's single journal row
"""

from datetime import date

import pytest

from tradebook.extensions import db
from tradebook.models import Customer, InventoryItem, Order, Transaction
from tradebook.services import order_service
from tradebook.services.commands import (
    CreateOrderCommand,
    OrderLineInput,
    RecordPaymentCommand,
    UpdateOrderCommand,
)
from tradebook.validation import NotFoundError, ValidationError


def _stock(item_id):
    return db.session.get(InventoryItem, item_id).stock_level


def _balance(customer_id):
    return db.session.get(Customer, customer_id).balance_cents


class TestPaymentStatus:

    @pytest.mark.parametrize(
        "total,paid,expected",
        [
            (5000, 0, "Unpaid"),
            (5000, 1, "Partial"),
            (5000, 4999, "Partial"),
            (5000, 5000, "Paid"),
            (5000, 6000, "Paid"),
            (0, 0, "Paid"),
        ],
    )
    def test_compute_payment_status(self, total, paid, expected):
        assert order_service.compute_payment_status(total, paid) == expected


class TestCreateOrder:

    def test_consumes_stock_and_charges_balance(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        assert order.total_cents == 5000
        assert order.payment_status == "Unpaid"
        assert order.document_number == "ORD-000001"
        assert _stock(item.id) == 95
        assert _balance(customer.id) == -5000

    def test_free_units_leave_stock_but_are_not_billed(self, item, customer, place_order):
        order = place_order(customer, item, 4, free_qty=1, price_cents=1000)

        assert order.total_cents == 4000
        assert order.lines[0].consumed_quantity == 5
        assert _stock(item.id) == 95

    def test_price_defaults_to_catalog_selling_price(self, make_item, customer, place_order):
        item = make_item(stock_level=10, selling_price_cents=1250)

        order = place_order(customer, item, 2)

        assert order.total_cents == 2500
        assert order.lines[0].unit_price_cents == 1250
        assert order.lines[0].selling_price_cents == 1250

    def test_discount_reduces_total(self, item, customer, place_order):
        order = place_order(customer, item, 3, price_cents=1000, discount_cents=500)
        assert order.total_cents == 2500
        assert _balance(customer.id) == -2500

    def test_discount_cannot_exceed_subtotal(self, item, customer, place_order):
        with pytest.raises(ValidationError):
            place_order(customer, item, 1, price_cents=1000, discount_cents=1001)
        assert _stock(item.id) == 100

    def test_paid_at_creation_writes_journal_row(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000, paid_cents=2000)

        assert order.payment_status == "Partial"
        assert _balance(customer.id) == -3000

        tx = db.session.get(Transaction, order.id)
        assert tx.type == "order"
        assert tx.amount_cents == 2000
        assert tx.description == f"Payment for Order {order.document_number}"
        assert tx.party == customer.name

    def test_unpaid_order_has_no_journal_row(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)
        assert db.session.get(Transaction, order.id) is None

    def test_unknown_customer(self, item):
        with pytest.raises(ValidationError):
            order_service.create_order(CreateOrderCommand(
                customer_id=4242,
                lines=[OrderLineInput(item_id=item.id, quantity=1)],
            ))
        assert _stock(item.id) == 100

    def test_invalid_payment_mode(self, item, customer):
        with pytest.raises(ValidationError):
            order_service.create_order(CreateOrderCommand(
                customer_id=customer.id,
                lines=[OrderLineInput(item_id=item.id, quantity=1)],
                payment_mode="Cheque",
            ))

    def test_negative_stock_allowed_by_default(self, make_item, customer, place_order):
        item = make_item(stock_level=2)
        place_order(customer, item, 5, price_cents=100)
        assert _stock(item.id) == -3

    def test_negative_stock_rejected_when_disabled(self, app, make_item, customer, place_order, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_NEGATIVE_STOCK", False)
        item = make_item(stock_level=2)

        with pytest.raises(ValidationError) as exc:
            place_order(customer, item, 5, price_cents=100)

        assert exc.value.details["stock_level"] == 2
        assert _stock(item.id) == 2
        assert _balance(customer.id) == 0
        assert db.session.query(Order).count() == 0


class TestDeleteOrder:

    def test_round_trip_restores_stock_and_balance(self, item, customer, place_order):
        order = place_order(customer, item, 7, free_qty=2, price_cents=1000, paid_cents=3000)

        order_service.delete_order(order.id)

        assert _stock(item.id) == 100
        assert _balance(customer.id) == 0
        assert db.session.query(Order).count() == 0
        assert db.session.query(Transaction).count() == 0

    def test_round_trip_after_payments(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)
        order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=1500))
        order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=500))

        order_service.delete_order(order.id)

        assert _stock(item.id) == 100
        assert _balance(customer.id) == 0
        assert db.session.query(Transaction).count() == 0

    def test_delete_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.delete_order("does-not-exist")


class TestUpdateOrder:

    def test_unchanged_edit_is_a_no_op(self, item, customer, place_order):
        order = place_order(customer, item, 5, free_qty=1, price_cents=1000, paid_cents=1000, discount_cents=200)
        before = (_stock(item.id), _balance(customer.id), order.total_cents, order.payment_status)

        order_service.update_order(UpdateOrderCommand(order_id=order.id))

        after_order = order_service.get_order(order.id)
        after = (_stock(item.id), _balance(customer.id), after_order.total_cents, after_order.payment_status)
        assert after == before
        assert db.session.query(Transaction).filter_by(entity_id=order.id).count() == 1

    def test_change_quantity_moves_stock_and_balance(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        updated = order_service.update_order(UpdateOrderCommand(
            order_id=order.id,
            lines=[OrderLineInput(item_id=item.id, quantity=8, selling_price_cents=1000)],
        ))

        assert updated.total_cents == 8000
        assert _stock(item.id) == 92
        assert _balance(customer.id) == -8000

    def test_change_amount_paid_rewrites_journal_row(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000, paid_cents=1000)

        updated = order_service.update_order(UpdateOrderCommand(order_id=order.id, amount_paid_cents=5000))

        assert updated.payment_status == "Paid"
        assert _balance(customer.id) == 0
        assert db.session.get(Transaction, order.id).amount_cents == 5000

    def test_clearing_amount_paid_drops_journal_row(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000, paid_cents=1000)

        order_service.update_order(UpdateOrderCommand(order_id=order.id, amount_paid_cents=0))

        assert db.session.get(Transaction, order.id) is None
        assert _balance(customer.id) == -5000

    def test_move_order_to_another_customer(self, item, make_customer, place_order):
        first = make_customer(name="First")
        second = make_customer(name="Second")
        order = place_order(first, item, 2, price_cents=1000)

        updated = order_service.update_order(UpdateOrderCommand(order_id=order.id, customer_id=second.id))

        assert updated.customer_name == "Second"
        assert _balance(first.id) == 0
        assert _balance(second.id) == -2000

    def test_invalid_edit_leaves_order_untouched(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        with pytest.raises(ValidationError):
            order_service.update_order(UpdateOrderCommand(
                order_id=order.id,
                lines=[OrderLineInput(item_id=item.id, quantity=0)],
            ))

        assert _stock(item.id) == 95
        assert _balance(customer.id) == -5000
        assert order_service.get_order(order.id).total_cents == 5000


class TestRecordPayment:

    def test_payment_updates_status_balance_and_journal(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        paid = order_service.record_order_payment(RecordPaymentCommand(
            order_id=order.id,
            amount_cents=2000,
            payment_mode="UPI",
            payment_date=date(2024, 3, 5),
        ))

        assert paid.amount_paid_cents == 2000
        assert paid.payment_status == "Partial"
        assert paid.payment_mode == "UPI"
        assert _balance(customer.id) == -3000

        tx = db.session.get(Transaction, order.id)
        assert tx.amount_cents == 2000
        assert tx.date == date(2024, 3, 5)

    def test_second_payment_keeps_one_cumulative_row(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)
        order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=2000))
        order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=3000))

        rows = db.session.query(Transaction).filter_by(type="order", entity_id=order.id).all()
        assert len(rows) == 1
        assert rows[0].amount_cents == 5000
        assert order_service.get_order(order.id).payment_status == "Paid"

    @pytest.mark.parametrize("amount", [0, -100])
    def test_rejects_non_positive_amount(self, item, customer, place_order, amount):
        order = place_order(customer, item, 1, price_cents=1000)
        with pytest.raises(ValidationError):
            order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=amount))

    def test_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.record_order_payment(RecordPaymentCommand(order_id="nope", amount_cents=100))

    def test_rejects_more_than_due(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000, paid_cents=1000)

        with pytest.raises(ValidationError) as exc:
            order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=9000))

        assert exc.value.details["due_cents"] == 4000
        unchanged = order_service.get_order(order.id)
        assert unchanged.amount_paid_cents == 1000
        assert unchanged.payment_status == "Partial"
        assert _balance(customer.id) == -4000
        assert db.session.get(Transaction, order.id).amount_cents == 1000

    def test_paying_exactly_the_due_settles_order(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000, paid_cents=1000)

        paid = order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=4000))

        assert paid.due_cents == 0
        assert paid.payment_status == "Paid"
        assert _balance(customer.id) == 0

    def test_payment_can_move_delivery_status(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        paid = order_service.record_order_payment(RecordPaymentCommand(
            order_id=order.id, amount_cents=2000, delivery_status="Processing",
        ))

        assert paid.delivery_status == "Processing"
        assert order_service.get_order(order.id).delivery_status == "Processing"

    def test_payment_without_status_keeps_delivery_status(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        paid = order_service.record_order_payment(RecordPaymentCommand(order_id=order.id, amount_cents=5000))

        assert paid.payment_status == "Paid"
        assert paid.delivery_status == "Pending"

    def test_invalid_delivery_status_rejected(self, item, customer, place_order):
        order = place_order(customer, item, 5, price_cents=1000)

        with pytest.raises(ValidationError):
            order_service.record_order_payment(RecordPaymentCommand(
                order_id=order.id, amount_cents=1000, delivery_status="Delivered",
            ))

        assert order_service.get_order(order.id).amount_paid_cents == 0


class TestDeliveryStatus:

    def test_statuses(self):
        assert order_service.DELIVERY_STATUSES == ("Pending", "Processing", "Completed", "Cancelled")

    def test_fully_paid_order_is_completed_on_save(self, item, customer, place_order):
        order = place_order(customer, item, 2, price_cents=1000, paid_cents=2000)
        assert order.delivery_status == "Completed"

    def test_partly_paid_order_keeps_requested_status(self, item, customer):
        order = order_service.create_order(CreateOrderCommand(
            customer_id=customer.id,
            lines=[OrderLineInput(item_id=item.id, quantity=2, selling_price_cents=1000)],
            amount_paid_cents=500,
            delivery_status="Processing",
        ))
        assert order.delivery_status == "Processing"

    def test_edit_to_full_payment_completes_order(self, item, customer, place_order):
        order = place_order(customer, item, 2, price_cents=1000)

        updated = order_service.update_order(UpdateOrderCommand(order_id=order.id, amount_paid_cents=2000))

        assert updated.delivery_status == "Completed"

    def test_cancelled_order_stays_cancelled_when_paid(self, item, customer, place_order):
        order = place_order(customer, item, 2, price_cents=1000)

        updated = order_service.update_order(UpdateOrderCommand(
            order_id=order.id, amount_paid_cents=2000, delivery_status="Cancelled",
        ))

        assert updated.payment_status == "Paid"
        assert updated.delivery_status == "Cancelled"


def test_stock_conservation_across_operations(make_item, customer, place_order, place_purchase):
    item = make_item(stock_level=20)

    purchase = place_purchase(item, 30, 500)
    first = place_order(customer, item, 12, free_qty=3, price_cents=900)
    second = place_order(customer, item, 4, price_cents=900)
    order_service.update_order(UpdateOrderCommand(
        order_id=first.id,
        lines=[OrderLineInput(item_id=item.id, quantity=6, free_qty=1, selling_price_cents=900)],
    ))
    order_service.delete_order(second.id)

    purchased = sum(line.quantity for line in purchase.lines)
    consumed = sum(line.consumed_quantity for line in order_service.get_order(first.id).lines)
    assert _stock(item.id) == 20 + purchased - consumed
    assert _stock(item.id) == 43
