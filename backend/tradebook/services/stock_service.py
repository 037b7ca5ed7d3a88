# Overview: Stock Ledger; the only writer of InventoryItem.stock_level and unit_cost_cents.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import InventoryItem
from ..validation import ValidationError
from .concurrency import lock_for_update
"""
Stock Ledger Invariants (authoritative)

- stock_level changes only through apply_stock_delta; callers choose the sign
  (+ purchase/restock or reversal of an order, - order consumption or
  reversal of a purchase).
- Each delta is a locked read-modify-write flushed immediately, so the
  version_id check rejects a concurrent writer on the same item while other
  items proceed independently.
- Nothing here commits. The enclosing lifecycle operation owns the
  transaction and rolls every delta back if any later step fails.
"""


def _load_item_locked(item_id: int) -> InventoryItem:
    item = (
        lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id))
        .populate_existing()
        .first()
    )
    if item is None:
        raise ValidationError(f"Inventory item {item_id} not found", details={"item_id": item_id})
    return item


def _negative_stock_allowed() -> bool:
    return bool(current_app.config.get("ALLOW_NEGATIVE_STOCK", True))


def apply_stock_delta(item_id: int, delta_qty: int, *, guard: bool = True) -> int:
    """
    Add delta_qty to the item's stock_level and return the new level.

    When ALLOW_NEGATIVE_STOCK is off, a negative delta that would take the
    level below zero raises ValidationError. guard=False skips the check for
    an intermediate level inside revert-then-reapply; the caller checks the
    final levels with ensure_stock_not_negative.
    """
    item = _load_item_locked(item_id)
    new_level = item.stock_level + delta_qty

    if guard and delta_qty < 0 and new_level < 0 and not _negative_stock_allowed():
        raise ValidationError(
            f"Insufficient stock for item {item.sku}",
            details={
                "item_id": item.id,
                "stock_level": item.stock_level,
                "requested_delta": delta_qty,
            },
        )

    item.stock_level = new_level
    db.session.flush()
    return new_level


def ensure_stock_not_negative(levels_before: dict[int, int]) -> None:
    """
    Final-level check after an unguarded revert.

    levels_before maps item id to its stock_level when the operation started.
    An item that ends below zero and lower than it started is rejected; one
    that was already negative and did not drop further is left alone.
    """
    if _negative_stock_allowed() or not levels_before:
        return

    items = (
        db.session.query(InventoryItem)
        .filter(InventoryItem.id.in_(list(levels_before)))
        .order_by(InventoryItem.id)
        .all()
    )
    for item in items:
        before = levels_before[item.id]
        if item.stock_level < 0 and item.stock_level < before:
            raise ValidationError(
                f"Insufficient stock for item {item.sku}",
                details={
                    "item_id": item.id,
                    "stock_level": before,
                    "requested_delta": item.stock_level - before,
                },
            )


def snapshot_levels(item_ids) -> dict[int, int]:
    """Current stock_level per item id, read inside the caller's transaction."""
    ids = sorted(set(item_ids))
    if not ids:
        return {}
    rows = (
        db.session.query(InventoryItem.id, InventoryItem.stock_level)
        .filter(InventoryItem.id.in_(ids))
        .all()
    )
    return {row.id: row.stock_level for row in rows}


def set_unit_cost(item_id: int, unit_cost_cents: int) -> InventoryItem:
    """Last-cost-wins: the item's cost follows the most recent purchase line."""
    item = _load_item_locked(item_id)
    if item.unit_cost_cents != unit_cost_cents:
        item.unit_cost_cents = unit_cost_cents
        db.session.flush()
    return item
