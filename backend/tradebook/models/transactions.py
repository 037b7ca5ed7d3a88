from __future__ import annotations

from ..extensions import db
from tradebook.time_utils import to_utc_z, to_iso_date


TRANSACTION_TYPE_ORDER = "order"
TRANSACTION_TYPE_PURCHASE = "purchase"
TRANSACTION_TYPE_EXPENSE = "expense"

TRANSACTION_TYPES = (
    TRANSACTION_TYPE_ORDER,
    TRANSACTION_TYPE_PURCHASE,
    TRANSACTION_TYPE_EXPENSE,
)


class Transaction(db.Model):
    """
    Unified transaction journal row.

    PAIRING:
    - type="order"/"purchase": id == entity_id == owning document id.
      (type, entity_id) is unique, so a document has at most one row.
    - type="expense": independent id, entity_id is NULL.

    Rows are replaced (delete + insert) rather than edited, inside the same
    DB transaction as the stock/balance deltas of the owning document.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("type", "entity_id", name="uq_transactions_type_entity"),
        db.Index("ix_transactions_type_date", "type", "date"),
    )

    id = db.Column(db.String(36), primary_key=True)
    type = db.Column(db.String(16), nullable=False)
    entity_id = db.Column(db.String(36), nullable=True)

    date = db.Column(db.Date, nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    # Customer name for orders, supplier name for purchases
    party = db.Column(db.String(255), nullable=True)
    payment_mode = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "entity_id": self.entity_id,
            "date": to_iso_date(self.date),
            "amount_cents": self.amount_cents,
            "description": self.description,
            "category": self.category,
            "party": self.party,
            "payment_mode": self.payment_mode,
            "created_at": to_utc_z(self.created_at),
        }
