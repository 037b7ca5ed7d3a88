# Overview: Order Lifecycle Manager; keeps stock, customer balance and the journal in step with orders.

"""
Order lifecycle

WHY: An order consumes stock (billed and free units alike), puts its total on
the customer's balance, and any money received against it is offset on the
same balance and recorded in the order's journal row. Deleting an order must
restore stock and balance exactly.

DESIGN:
- create: consume stock -(quantity + free_qty) per line; total = sum of
  quantity * selling price - discount; balance delta = amount_paid - total;
  journal row (id == order id) when amount_paid > 0
- update: REVERT committed effects (+stock, balance delta total - amount_paid,
  drop journal row, drop lines) -> REAPPLY create steps from merged inputs
- delete: REVERT committed effects -> delete the order
- record payment: at most the amount due; balance +amount, amount_paid +=
  amount, status recomputed, journal row replaced with the new cumulative
  amount paid; optionally moves the delivery status too
- Every public operation is one DB transaction (run_atomic).

PAYMENT STATUS:
- Paid: amount_paid >= total
- Partial: 0 < amount_paid < total
- Unpaid: amount_paid == 0

DELIVERY STATUS:
- Pending, Processing, Completed, Cancelled
- create/update of a fully paid order sets Completed (Cancelled is kept)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Customer, InventoryItem, Order, OrderLine
from ..models.orders import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
)
from ..models.transactions import TRANSACTION_TYPE_ORDER
from ..validation import (
    NotFoundError,
    ValidationError,
    enforce_amount,
    enforce_payment_mode,
    enforce_quantity,
    optional_text,
)
from tradebook.time_utils import today
from . import balance_service, journal_service, stock_service
from .commands import (
    CreateOrderCommand,
    OrderLineInput,
    RecordPaymentCommand,
    UpdateOrderCommand,
)
from .concurrency import lock_for_update, run_atomic
from .document_service import DOCUMENT_TYPE_ORDER, next_document_number


logger = logging.getLogger(__name__)

DELIVERY_STATUS_COMPLETED = "Completed"
DELIVERY_STATUS_CANCELLED = "Cancelled"
DELIVERY_STATUSES = ("Pending", "Processing", DELIVERY_STATUS_COMPLETED, DELIVERY_STATUS_CANCELLED)


@dataclass(frozen=True)
class _PricedLine:
    item_id: int
    quantity: int
    free_qty: int
    unit_price_cents: int
    selling_price_cents: int
    description: str | None

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.selling_price_cents


def compute_payment_status(total_cents: int, amount_paid_cents: int) -> str:
    if amount_paid_cents >= total_cents:
        return PAYMENT_STATUS_PAID
    if amount_paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


# =============================================================================
# VALIDATION
# =============================================================================

def _price_lines(lines: list[OrderLineInput]) -> list[_PricedLine]:
    """Validate order lines and resolve default prices from the catalog."""
    if not lines:
        raise ValidationError("Order needs at least one line item")

    item_ids = set()
    for index, line in enumerate(lines):
        if line.item_id is None:
            raise ValidationError("Every line needs an item", details={"line": index})
        try:
            enforce_quantity(line.quantity)
            enforce_quantity(line.free_qty, "free_qty", allow_zero=True)
            if line.unit_price_cents is not None:
                enforce_amount(line.unit_price_cents, "unit_price_cents")
            if line.selling_price_cents is not None:
                enforce_amount(line.selling_price_cents, "selling_price_cents")
        except ValidationError as exc:
            exc.details.setdefault("line", index)
            raise
        item_ids.add(line.item_id)

    items = {
        item.id: item
        for item in db.session.query(InventoryItem).filter(InventoryItem.id.in_(item_ids)).all()
    }
    missing = sorted(item_ids - set(items))
    if missing:
        raise ValidationError("Unknown inventory items", details={"item_ids": missing})

    priced = []
    for line in lines:
        unit_price = line.unit_price_cents
        if unit_price is None:
            unit_price = items[line.item_id].selling_price_cents
        selling_price = line.selling_price_cents if line.selling_price_cents is not None else unit_price
        priced.append(
            _PricedLine(
                item_id=line.item_id,
                quantity=line.quantity,
                free_qty=line.free_qty,
                unit_price_cents=unit_price,
                selling_price_cents=selling_price,
                description=optional_text(line.description),
            )
        )
    return priced


def _load_customer(customer_id: int | None) -> Customer:
    if customer_id is None:
        raise ValidationError("customer_id is required")
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if customer is None:
        raise ValidationError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer


def _check_totals(priced: list[_PricedLine], discount_cents: int, amount_paid_cents: int) -> int:
    enforce_amount(discount_cents, "discount_cents")
    enforce_amount(amount_paid_cents, "amount_paid_cents")
    subtotal = sum(line.line_total_cents for line in priced)
    if discount_cents > subtotal:
        raise ValidationError(
            "Discount cannot exceed the order subtotal",
            details={"subtotal_cents": subtotal, "discount_cents": discount_cents},
        )
    return subtotal - discount_cents


def _payment_mode(value: str | None) -> str:
    return enforce_payment_mode(value, default=current_app.config.get("DEFAULT_PAYMENT_MODE"))


def _delivery_status(value: str) -> str:
    if value not in DELIVERY_STATUSES:
        raise ValidationError(f"Invalid delivery status: {value}. Must be one of {list(DELIVERY_STATUSES)}")
    return value


# =============================================================================
# REVERT / APPLY STEPS
# =============================================================================

def _sync_payment_journal(order: Order, payment_date: date | None = None) -> None:
    """Replace the order's journal row with its cumulative amount paid (or drop it at zero)."""
    if order.amount_paid_cents <= 0:
        journal_service.remove_for_entity(order.id, TRANSACTION_TYPE_ORDER)
        return

    journal_service.upsert_for_entity(
        order.id,
        TRANSACTION_TYPE_ORDER,
        date=payment_date or order.order_date,
        amount_cents=order.amount_paid_cents,
        description=f"Payment for Order {order.document_number}",
        party=order.customer_name,
        payment_mode=order.payment_mode,
    )


def _apply_order_effects(
    order: Order,
    priced: list[_PricedLine],
    *,
    discount_cents: int,
    amount_paid_cents: int,
) -> None:
    """
    APPLY step: consume stock for every line (free units included), rebuild
    lines and derived totals, move the customer balance by
    amount_paid - total, and write the payment journal row.
    """
    for line in priced:
        stock_service.apply_stock_delta(line.item_id, -(line.quantity + line.free_qty))
        order.lines.append(
            OrderLine(
                item_id=line.item_id,
                quantity=line.quantity,
                free_qty=line.free_qty,
                unit_price_cents=line.unit_price_cents,
                selling_price_cents=line.selling_price_cents,
                line_total_cents=line.line_total_cents,
                description=line.description,
            )
        )

    total = sum(line.line_total_cents for line in priced) - discount_cents
    order.discount_cents = discount_cents
    order.total_cents = total
    order.amount_paid_cents = amount_paid_cents
    order.payment_status = compute_payment_status(total, amount_paid_cents)
    # Saving a fully paid order closes it unless it was cancelled
    if order.payment_status == PAYMENT_STATUS_PAID and order.delivery_status != DELIVERY_STATUS_CANCELLED:
        order.delivery_status = DELIVERY_STATUS_COMPLETED
    db.session.flush()

    balance_service.apply_balance_delta(order.customer_id, amount_paid_cents - total)
    _sync_payment_journal(order)


def _revert_order_effects(order: Order) -> None:
    """
    REVERT step: give back the stock every committed line consumed, undo the
    create-time balance delta (total - amount_paid), drop the journal row and
    the old lines.
    """
    for line in list(order.lines):
        stock_service.apply_stock_delta(line.item_id, line.quantity + line.free_qty)
        order.lines.remove(line)

    balance_service.apply_balance_delta(order.customer_id, order.total_cents - order.amount_paid_cents)
    journal_service.remove_for_entity(order.id, TRANSACTION_TYPE_ORDER)
    db.session.flush()


def _load_order_locked(order_id: str) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def _apply_payment_locked(
    order: Order,
    amount_cents: int,
    *,
    payment_mode: str,
    payment_date: date | None = None,
) -> Order:
    """
    Standalone payment against one order, without touching its lines.

    Core logic shared by record_order_payment() and the FIFO allocator;
    no commit.
    """
    balance_service.apply_balance_delta(order.customer_id, amount_cents)

    order.amount_paid_cents = order.amount_paid_cents + amount_cents
    order.payment_status = compute_payment_status(order.total_cents, order.amount_paid_cents)
    order.payment_mode = payment_mode
    db.session.flush()

    _sync_payment_journal(order, payment_date or today())
    return order


# =============================================================================
# LIFECYCLE OPERATIONS
# =============================================================================

def create_order(cmd: CreateOrderCommand) -> Order:
    """Record a sales order: consume stock, charge the customer, journal any payment."""
    payment_mode = _payment_mode(cmd.payment_mode)
    delivery_status = _delivery_status(cmd.delivery_status)

    def _op():
        customer = _load_customer(cmd.customer_id)
        priced = _price_lines(cmd.lines)
        _check_totals(priced, cmd.discount_cents, cmd.amount_paid_cents)

        order = Order(
            document_number=next_document_number(document_type=DOCUMENT_TYPE_ORDER),
            customer_id=customer.id,
            customer_name=customer.name,
            order_date=cmd.order_date or today(),
            payment_mode=payment_mode,
            delivery_status=delivery_status,
            total_cents=0,
            amount_paid_cents=0,
        )
        db.session.add(order)
        db.session.flush()

        _apply_order_effects(
            order,
            priced,
            discount_cents=cmd.discount_cents,
            amount_paid_cents=cmd.amount_paid_cents,
        )

        logger.info(
            "Created order %s for customer %s (%s cents, paid %s)",
            order.document_number, customer.id, order.total_cents, order.amount_paid_cents,
        )
        return order

    return run_atomic(_op)


def update_order(cmd: UpdateOrderCommand) -> Order:
    """
    Edit an order via revert-then-reapply.

    Fields left as None keep their committed values; the order is still fully
    reverted and reapplied so stock, balance and journal are recomputed from
    one consistent set of inputs.
    """
    payment_mode = _payment_mode(cmd.payment_mode) if cmd.payment_mode is not None else None
    delivery_status = _delivery_status(cmd.delivery_status) if cmd.delivery_status is not None else None

    def _op():
        order = _load_order_locked(cmd.order_id)

        if cmd.lines is not None:
            line_inputs = cmd.lines
        else:
            line_inputs = [
                OrderLineInput(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    free_qty=line.free_qty,
                    unit_price_cents=line.unit_price_cents,
                    selling_price_cents=line.selling_price_cents,
                    description=line.description,
                )
                for line in order.lines
            ]
        discount = cmd.discount_cents if cmd.discount_cents is not None else order.discount_cents
        amount_paid = cmd.amount_paid_cents if cmd.amount_paid_cents is not None else order.amount_paid_cents
        customer = _load_customer(cmd.customer_id if cmd.customer_id is not None else order.customer_id)

        priced = _price_lines(line_inputs)
        _check_totals(priced, discount, amount_paid)

        _revert_order_effects(order)

        order.customer_id = customer.id
        order.customer_name = customer.name
        if payment_mode is not None:
            order.payment_mode = payment_mode
        if cmd.order_date is not None:
            order.order_date = cmd.order_date
        if delivery_status is not None:
            order.delivery_status = delivery_status

        _apply_order_effects(order, priced, discount_cents=discount, amount_paid_cents=amount_paid)

        logger.info(
            "Updated order %s (%s cents, paid %s)",
            order.document_number, order.total_cents, order.amount_paid_cents,
        )
        return order

    return run_atomic(_op)


def delete_order(order_id: str) -> None:
    """Delete an order; reverts its stock consumption and customer balance effect."""
    def _op():
        order = _load_order_locked(order_id)
        document_number = order.document_number

        _revert_order_effects(order)
        db.session.delete(order)
        db.session.flush()

        logger.info("Deleted order %s", document_number)

    run_atomic(_op)


def record_order_payment(cmd: RecordPaymentCommand) -> Order:
    """Record money received against one order without editing its lines."""
    amount = enforce_amount(cmd.amount_cents, "amount_cents", allow_zero=False)
    payment_mode = _payment_mode(cmd.payment_mode)
    delivery_status = _delivery_status(cmd.delivery_status) if cmd.delivery_status is not None else None

    def _op():
        order = _load_order_locked(cmd.order_id)
        if amount > order.due_cents:
            raise ValidationError(
                f"Payment exceeds the amount due on order {order.document_number}",
                details={"order_id": order.id, "due_cents": order.due_cents, "amount_cents": amount},
            )

        _apply_payment_locked(order, amount, payment_mode=payment_mode, payment_date=cmd.payment_date)
        if delivery_status is not None:
            order.delivery_status = delivery_status
            db.session.flush()

        logger.info(
            "Recorded payment of %s cents on order %s (%s)",
            amount, order.document_number, order.payment_status,
        )
        return order

    return run_atomic(_op)


# =============================================================================
# READ PATH
# =============================================================================

def get_order(order_id: str) -> Order:
    order = db.session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def list_open_orders(customer_id: int, *, lock: bool = False) -> list[Order]:
    """
    A customer's orders that are not fully paid, oldest first.

    Ordered by the business order_date, ties broken by id so the sequence is
    deterministic.
    """
    q = db.session.query(Order).filter(
        Order.customer_id == customer_id,
        Order.payment_status != PAYMENT_STATUS_PAID,
    )
    if lock:
        q = lock_for_update(q)
    return q.order_by(Order.order_date.asc(), Order.id.asc()).all()


def list_orders(
    *,
    customer_id: int | None = None,
    payment_status: str | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """Orders newest first, with the total count for paging."""
    q = db.session.query(Order)
    if customer_id is not None:
        q = q.filter(Order.customer_id == customer_id)
    if payment_status is not None:
        q = q.filter(Order.payment_status == payment_status)
    if start is not None:
        q = q.filter(Order.order_date >= start)
    if end is not None:
        q = q.filter(Order.order_date <= end)

    total = q.count()
    rows = (
        q.order_by(Order.order_date.desc(), Order.created_at.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return rows, total
