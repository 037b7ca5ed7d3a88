# Overview: Catalog reader; inventory item master data and stock lookups (stock writes go through stock_service).

from __future__ import annotations

import logging

from sqlalchemy import or_

from ..extensions import db
from ..models import InventoryItem, OrderLine, PurchaseLine
from ..validation import (
    NotFoundError,
    ValidationError,
    enforce_amount,
    enforce_quantity,
    optional_text,
    require_text,
)
from .commands import CreateItemCommand, UpdateItemCommand
from .concurrency import lock_for_update, run_atomic


logger = logging.getLogger(__name__)


def create_item(cmd: CreateItemCommand) -> InventoryItem:
    """
    Add an item to the catalog with its opening stock.

    Opening stock is part of the item's initial state; every later change
    goes through stock deltas.
    """
    sku = require_text(cmd.sku, "sku").upper()
    name = require_text(cmd.name, "name")
    if not isinstance(cmd.stock_level, int) or isinstance(cmd.stock_level, bool):
        raise ValidationError("stock_level must be an integer")
    enforce_quantity(cmd.reorder_level, "reorder_level", allow_zero=True)
    enforce_amount(cmd.unit_cost_cents, "unit_cost_cents")
    enforce_amount(cmd.selling_price_cents, "selling_price_cents")

    def _op():
        if db.session.query(InventoryItem.id).filter_by(sku=sku).first() is not None:
            raise ValidationError(f"SKU {sku} already exists", details={"sku": sku})

        item = InventoryItem(
            sku=sku,
            name=name,
            description=optional_text(cmd.description),
            stock_level=cmd.stock_level,
            reorder_level=cmd.reorder_level,
            unit_cost_cents=cmd.unit_cost_cents,
            selling_price_cents=cmd.selling_price_cents,
            is_active=True,
        )
        db.session.add(item)
        db.session.flush()
        logger.info("Created inventory item %s (%s)", item.sku, item.id)
        return item

    return run_atomic(_op)


def _load_item_locked(item_id: int) -> InventoryItem:
    item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
    if item is None:
        raise NotFoundError(f"Inventory item {item_id} not found", details={"item_id": item_id})
    return item


def update_item(cmd: UpdateItemCommand) -> InventoryItem:
    """
    Edit an item's master fields. None keeps the committed value.

    stock_level is not editable here: it only moves through purchase and
    order deltas.
    """
    sku = require_text(cmd.sku, "sku").upper() if cmd.sku is not None else None
    name = require_text(cmd.name, "name") if cmd.name is not None else None
    if cmd.reorder_level is not None:
        enforce_quantity(cmd.reorder_level, "reorder_level", allow_zero=True)
    if cmd.unit_cost_cents is not None:
        enforce_amount(cmd.unit_cost_cents, "unit_cost_cents")
    if cmd.selling_price_cents is not None:
        enforce_amount(cmd.selling_price_cents, "selling_price_cents")
    if cmd.is_active is not None and not isinstance(cmd.is_active, bool):
        raise ValidationError("is_active must be true or false")

    def _op():
        item = _load_item_locked(cmd.item_id)

        if sku is not None and sku != item.sku:
            taken = (
                db.session.query(InventoryItem.id)
                .filter(InventoryItem.sku == sku, InventoryItem.id != item.id)
                .first()
            )
            if taken is not None:
                raise ValidationError(f"SKU {sku} already exists", details={"sku": sku})
            item.sku = sku
        if name is not None:
            item.name = name
        if cmd.description is not None:
            item.description = optional_text(cmd.description)
        if cmd.reorder_level is not None:
            item.reorder_level = cmd.reorder_level
        if cmd.unit_cost_cents is not None:
            item.unit_cost_cents = cmd.unit_cost_cents
        if cmd.selling_price_cents is not None:
            item.selling_price_cents = cmd.selling_price_cents
        if cmd.is_active is not None:
            item.is_active = cmd.is_active

        db.session.flush()
        logger.info("Updated inventory item %s (%s)", item.sku, item.id)
        return item

    return run_atomic(_op)


def delete_item(item_id: int) -> None:
    """
    Remove an item from the catalog.

    Refused while any order or purchase line still points at it; retire the
    item with is_active=False instead.
    """
    def _op():
        item = _load_item_locked(item_id)

        order_lines = db.session.query(OrderLine.id).filter_by(item_id=item.id).count()
        purchase_lines = db.session.query(PurchaseLine.id).filter_by(item_id=item.id).count()
        if order_lines or purchase_lines:
            raise ValidationError(
                f"Inventory item {item.sku} is used by existing documents",
                details={
                    "item_id": item.id,
                    "order_lines": order_lines,
                    "purchase_lines": purchase_lines,
                },
            )

        sku = item.sku
        db.session.delete(item)
        db.session.flush()
        logger.info("Deleted inventory item %s (%s)", sku, item_id)

    run_atomic(_op)


def get_item(item_id: int) -> InventoryItem:
    item = db.session.query(InventoryItem).filter_by(id=item_id).first()
    if item is None:
        raise NotFoundError(f"Inventory item {item_id} not found", details={"item_id": item_id})
    return item


def get_item_by_sku(sku: str) -> InventoryItem | None:
    return db.session.query(InventoryItem).filter_by(sku=sku.strip().upper()).first()


def list_items(*, search: str | None = None, include_inactive: bool = False) -> list[InventoryItem]:
    q = db.session.query(InventoryItem)
    if not include_inactive:
        q = q.filter(InventoryItem.is_active == True)  # noqa: E712
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(InventoryItem.name.ilike(pattern), InventoryItem.sku.ilike(pattern)))
    return q.order_by(InventoryItem.name, InventoryItem.id).all()


def list_low_stock_items() -> list[InventoryItem]:
    """Active items at or below zero, or under their reorder level."""
    return (
        db.session.query(InventoryItem)
        .filter(
            InventoryItem.is_active == True,  # noqa: E712
            or_(
                InventoryItem.stock_level <= 0,
                InventoryItem.stock_level < InventoryItem.reorder_level,
            ),
        )
        .order_by(InventoryItem.stock_level, InventoryItem.name)
        .all()
    )
