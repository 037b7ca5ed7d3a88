from __future__ import annotations

from ..extensions import db
from tradebook.time_utils import to_utc_z


STOCK_STATUS_OUT = "Out of Stock"
STOCK_STATUS_LOW = "Low Stock"
STOCK_STATUS_IN = "In Stock"


class InventoryItem(db.Model):
    """
    Inventory item master data with its running stock level.

    STOCK LEVEL:
    stock_level is a stored running total, not a ledger sum. It is only ever
    changed by stock deltas issued from purchase and order lifecycle
    operations (services.stock_service.apply_stock_delta). It may go negative
    unless ALLOW_NEGATIVE_STOCK is switched off.

    COST:
    unit_cost_cents follows the most recent purchase line (last-cost-wins).
    Earlier purchases keep the totals they were recorded with.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_inventory_items_sku"),
        db.Index("ix_inventory_items_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    stock_level = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def stock_status(self) -> str:
        if self.stock_level <= 0:
            return STOCK_STATUS_OUT
        if self.stock_level < self.reorder_level:
            return STOCK_STATUS_LOW
        return STOCK_STATUS_IN

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} stock_level={self.stock_level}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "stock_level": self.stock_level,
            "reorder_level": self.reorder_level,
            "stock_status": self.stock_status,
            "unit_cost_cents": self.unit_cost_cents,
            "selling_price_cents": self.selling_price_cents,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
