# Overview: Purchase Lifecycle Manager; keeps stock, item cost and the journal in step with purchases.

"""
Purchase lifecycle

WHY: A purchase restocks items, moves their cost to the latest price paid,
and owns exactly one "purchase" journal row. Editing or deleting a purchase
must leave no drift in any of the three.

DESIGN:
- create: apply lines (+qty, last cost) -> persist -> journal upsert
- update: REVERT committed effects (-qty per old line, drop journal row,
  drop old lines; cost untouched) -> REAPPLY create steps with the new lines
  under the same id and document number
- delete: REVERT committed effects -> delete the purchase
- Every operation is one DB transaction (run_atomic): any failure leaves
  stock, cost and journal exactly as they were.
"""

from __future__ import annotations

import logging
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Purchase, PurchaseLine, InventoryItem
from ..models.transactions import TRANSACTION_TYPE_PURCHASE
from ..validation import (
    NotFoundError,
    ValidationError,
    enforce_amount,
    enforce_payment_mode,
    enforce_quantity,
    optional_text,
    require_text,
)
from tradebook.time_utils import today
from . import journal_service, stock_service
from .commands import CreatePurchaseCommand, PurchaseLineInput, UpdatePurchaseCommand
from .concurrency import lock_for_update, run_atomic
from .document_service import DOCUMENT_TYPE_PURCHASE, next_document_number


logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def _validate_lines(lines: list[PurchaseLineInput]) -> list[PurchaseLineInput]:
    if not lines:
        raise ValidationError("Purchase needs at least one line item")

    for index, line in enumerate(lines):
        if line.item_id is None:
            raise ValidationError("Every line needs an item", details={"line": index})
        try:
            enforce_quantity(line.quantity)
            enforce_amount(line.unit_price_cents, "unit_price_cents")
        except ValidationError as exc:
            exc.details.setdefault("line", index)
            raise

    item_ids = {line.item_id for line in lines}
    found = {
        row.id
        for row in db.session.query(InventoryItem.id).filter(InventoryItem.id.in_(item_ids)).all()
    }
    missing = sorted(item_ids - found)
    if missing:
        raise ValidationError("Unknown inventory items", details={"item_ids": missing})

    return lines


def _payment_mode(value: str | None) -> str:
    return enforce_payment_mode(value, default=current_app.config.get("DEFAULT_PAYMENT_MODE"))


# =============================================================================
# REVERT / APPLY STEPS
# =============================================================================

def _apply_purchase_lines(purchase: Purchase, lines: list[PurchaseLineInput]) -> None:
    """
    APPLY step: restock every line, move item cost to the line price, rebuild
    the purchase's lines and total, and (re)write its journal row.
    """
    total = 0
    for line in lines:
        stock_service.apply_stock_delta(line.item_id, line.quantity)
        stock_service.set_unit_cost(line.item_id, line.unit_price_cents)

        line_total = line.quantity * line.unit_price_cents
        total += line_total
        purchase.lines.append(
            PurchaseLine(
                item_id=line.item_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=line_total,
                description=optional_text(line.description),
            )
        )

    purchase.total_cents = total
    db.session.flush()

    journal_service.upsert_for_entity(
        purchase.id,
        TRANSACTION_TYPE_PURCHASE,
        date=purchase.purchase_date,
        amount_cents=total,
        description=f"Purchase {purchase.document_number} from {purchase.supplier_name}",
        party=purchase.supplier_name,
        payment_mode=purchase.payment_mode,
    )


def _revert_purchase_effects(purchase: Purchase, *, guard: bool = True) -> None:
    """
    REVERT step: undo the stock the committed lines added and drop the
    journal row. Item cost is left as-is (last-cost-wins is not rolled back).

    update_purchase reverts with guard=False and checks final levels after
    the reapply; delete_purchase keeps the per-delta guard since the revert
    is its final state.
    """
    for line in list(purchase.lines):
        stock_service.apply_stock_delta(line.item_id, -line.quantity, guard=guard)
        purchase.lines.remove(line)

    journal_service.remove_for_entity(purchase.id, TRANSACTION_TYPE_PURCHASE)
    db.session.flush()


def _load_purchase_locked(purchase_id: str) -> Purchase:
    purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
    if purchase is None:
        raise NotFoundError(f"Purchase {purchase_id} not found", details={"purchase_id": purchase_id})
    return purchase


# =============================================================================
# LIFECYCLE OPERATIONS
# =============================================================================

def create_purchase(cmd: CreatePurchaseCommand) -> Purchase:
    """Record a supplier purchase: restock, update cost, write its journal row."""
    supplier_name = require_text(cmd.supplier_name, "supplier_name")
    payment_mode = _payment_mode(cmd.payment_mode)

    def _op():
        lines = _validate_lines(cmd.lines)

        purchase = Purchase(
            document_number=next_document_number(document_type=DOCUMENT_TYPE_PURCHASE),
            supplier_name=supplier_name,
            purchase_date=cmd.purchase_date or today(),
            payment_mode=payment_mode,
            status="Received",
            total_cents=0,
        )
        db.session.add(purchase)
        db.session.flush()

        _apply_purchase_lines(purchase, lines)

        logger.info(
            "Created purchase %s (%s lines, %s cents)",
            purchase.document_number, len(lines), purchase.total_cents,
        )
        return purchase

    return run_atomic(_op)


def update_purchase(cmd: UpdatePurchaseCommand) -> Purchase:
    """
    Replace a purchase's lines via revert-then-reapply.

    The purchase keeps its id and document number, so its journal row is
    recreated under the same id.
    """
    supplier_name = require_text(cmd.supplier_name, "supplier_name") if cmd.supplier_name is not None else None
    payment_mode = _payment_mode(cmd.payment_mode) if cmd.payment_mode is not None else None

    def _op():
        purchase = _load_purchase_locked(cmd.purchase_id)
        lines = _validate_lines(cmd.lines)
        levels_before = stock_service.snapshot_levels(line.item_id for line in purchase.lines)

        _revert_purchase_effects(purchase, guard=False)

        if supplier_name is not None:
            purchase.supplier_name = supplier_name
        if payment_mode is not None:
            purchase.payment_mode = payment_mode
        if cmd.purchase_date is not None:
            purchase.purchase_date = cmd.purchase_date

        _apply_purchase_lines(purchase, lines)
        stock_service.ensure_stock_not_negative(levels_before)

        logger.info(
            "Updated purchase %s (%s lines, %s cents)",
            purchase.document_number, len(lines), purchase.total_cents,
        )
        return purchase

    return run_atomic(_op)


def delete_purchase(purchase_id: str) -> None:
    """Delete a purchase, taking its stock back out and dropping its journal row."""
    def _op():
        purchase = _load_purchase_locked(purchase_id)
        document_number = purchase.document_number

        _revert_purchase_effects(purchase)
        db.session.delete(purchase)
        db.session.flush()

        logger.info("Deleted purchase %s", document_number)

    run_atomic(_op)


# =============================================================================
# READ PATH
# =============================================================================

def get_purchase(purchase_id: str) -> Purchase:
    purchase = db.session.query(Purchase).filter_by(id=purchase_id).first()
    if purchase is None:
        raise NotFoundError(f"Purchase {purchase_id} not found", details={"purchase_id": purchase_id})
    return purchase


def list_purchases(
    *,
    start: date | None = None,
    end: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Purchase], int]:
    """Purchases newest first, with the total count for paging."""
    q = db.session.query(Purchase)
    if start is not None:
        q = q.filter(Purchase.purchase_date >= start)
    if end is not None:
        q = q.filter(Purchase.purchase_date <= end)

    total = q.count()
    rows = (
        q.order_by(Purchase.purchase_date.desc(), Purchase.created_at.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return rows, total
