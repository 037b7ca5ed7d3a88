from __future__ import annotations

import uuid

from ..extensions import db
from tradebook.time_utils import to_utc_z, to_iso_date


PAYMENT_STATUS_UNPAID = "Unpaid"
PAYMENT_STATUS_PARTIAL = "Partial"
PAYMENT_STATUS_PAID = "Paid"


def _new_id() -> str:
    return str(uuid.uuid4())


class Order(db.Model):
    """
    Sales order document.

    DERIVED FIELDS:
    total_cents and payment_status are never accepted from callers; they are
    recomputed whenever lines, discount or amount_paid_cents change.

    JOURNAL PAIRING:
    While amount_paid_cents > 0 exactly one Transaction row with type="order"
    and id == Order.id exists, carrying the cumulative amount received.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_orders_document_number"),
        # FIFO allocation scans a customer's open orders oldest-first
        db.Index("ix_orders_customer_status_date", "customer_id", "payment_status", "order_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    # Human-readable document number (e.g., "ORD-000123")
    document_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    # Snapshot for journal descriptions and receipts
    customer_name = db.Column(db.String(255), nullable=False)

    order_date = db.Column(db.Date, nullable=False, index=True)

    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_UNPAID, index=True)
    payment_mode = db.Column(db.String(16), nullable=True)

    delivery_status = db.Column(db.String(16), nullable=False, default="Pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def due_cents(self) -> int:
        return self.total_cents - self.amount_paid_cents

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.document_number!r} total_cents={self.total_cents}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "order_date": to_iso_date(self.order_date),
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "due_cents": self.due_cents,
            "payment_status": self.payment_status,
            "payment_mode": self.payment_mode,
            "delivery_status": self.delivery_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """Individual line on an order; free_qty ships without being billed."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    free_qty = db.Column(db.Integer, nullable=False, default=0)

    # List price (MRP) and the price actually charged
    unit_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=True)

    order = db.relationship("Order", back_populates="lines")
    item = db.relationship("InventoryItem")

    @property
    def consumed_quantity(self) -> int:
        return self.quantity + self.free_qty

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "free_qty": self.free_qty,
            "unit_price_cents": self.unit_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "line_total_cents": self.line_total_cents,
            "description": self.description,
        }
