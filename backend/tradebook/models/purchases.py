from __future__ import annotations

import uuid

from ..extensions import db
from tradebook.time_utils import to_utc_z, to_iso_date


def _new_id() -> str:
    return str(uuid.uuid4())


class Purchase(db.Model):
    """
    Supplier purchase document.

    Purchases only ever touch stock (increase) and item cost; they never move
    a customer balance. Exactly one Transaction row with type="purchase" and
    id == Purchase.id exists for every live purchase.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_purchases_document_number"),
        db.Index("ix_purchases_date", "purchase_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    document_number = db.Column(db.String(32), nullable=False)

    supplier_name = db.Column(db.String(255), nullable=False)
    purchase_date = db.Column(db.Date, nullable=False)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_mode = db.Column(db.String(16), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Received")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "PurchaseLine",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} number={self.document_number!r} total_cents={self.total_cents}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "supplier_name": self.supplier_name,
            "purchase_date": to_iso_date(self.purchase_date),
            "total_cents": self.total_cents,
            "payment_mode": self.payment_mode,
            "status": self.status,
            "items_count": len(self.lines),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.String(36), db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=True)

    purchase = db.relationship("Purchase", back_populates="lines")
    item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "description": self.description,
        }
