# Overview: Transaction Journal; keeps one ledger row per purchase/order and stores manual expenses.

from __future__ import annotations

import logging
import uuid
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Transaction
from ..models.transactions import (
    TRANSACTION_TYPE_ORDER,
    TRANSACTION_TYPE_PURCHASE,
    TRANSACTION_TYPE_EXPENSE,
    TRANSACTION_TYPES,
)
from ..validation import (
    NotFoundError,
    ValidationError,
    enforce_amount,
    enforce_category,
    enforce_payment_mode,
    require_text,
)
from tradebook.time_utils import today
from .commands import ExpenseCommand
from .concurrency import run_atomic
"""
Transaction Journal Invariants (authoritative)

- For type "order"/"purchase" the row id equals the owning document id and
  (type, entity_id) is unique: at most one row per document.
- Paired rows are replaced, never edited: delete any existing row, flush,
  insert the new one. This happens in the same DB transaction as the owning
  document's stock/balance deltas.
- Expense rows get a fresh id and are only ever deleted directly by id.
"""

PAIRED_TYPES = (TRANSACTION_TYPE_ORDER, TRANSACTION_TYPE_PURCHASE)

logger = logging.getLogger(__name__)


def _ensure_paired_type(type_: str) -> None:
    if type_ not in PAIRED_TYPES:
        raise ValueError(f"journal type {type_!r} is not entity-paired")


def get_for_entity(entity_id: str, type_: str) -> Transaction | None:
    _ensure_paired_type(type_)
    return db.session.query(Transaction).filter_by(type=type_, entity_id=entity_id).first()


def remove_for_entity(entity_id: str, type_: str) -> bool:
    """Delete the row paired with (type, entity_id) if present. Does not commit."""
    existing = get_for_entity(entity_id, type_)
    if existing is None:
        return False
    db.session.delete(existing)
    db.session.flush()
    return True


def upsert_for_entity(
    entity_id: str,
    type_: str,
    *,
    date: date,
    amount_cents: int,
    description: str,
    party: str | None = None,
    payment_mode: str | None = None,
    category: str | None = None,
) -> Transaction:
    """
    Replace the row paired with (type, entity_id). Does not commit.

    The old row is deleted and flushed before the insert so the unique
    (type, entity_id) constraint is never violated mid-transaction.
    """
    remove_for_entity(entity_id, type_)

    tx = Transaction(
        id=entity_id,
        type=type_,
        entity_id=entity_id,
        date=date,
        amount_cents=amount_cents,
        description=description,
        party=party,
        payment_mode=payment_mode,
        category=category,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def insert_expense(
    *,
    date: date,
    amount_cents: int,
    description: str,
    category: str,
    payment_mode: str | None = None,
) -> Transaction:
    """Insert an unpaired expense row with a fresh id. Does not commit."""
    tx = Transaction(
        id=str(uuid.uuid4()),
        type=TRANSACTION_TYPE_EXPENSE,
        entity_id=None,
        date=date,
        amount_cents=amount_cents,
        description=description,
        category=category,
        payment_mode=payment_mode,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


# =============================================================================
# EXPENSES (public operations)
# =============================================================================

def record_expense(cmd: ExpenseCommand) -> Transaction:
    """Record a manual expense as its own journal row."""
    description = require_text(cmd.description, "description")
    amount = enforce_amount(cmd.amount_cents, "amount_cents", allow_zero=False)
    category = enforce_category(cmd.category or "Other")
    payment_mode = enforce_payment_mode(cmd.payment_mode, default=current_app.config.get("DEFAULT_PAYMENT_MODE"))

    def _op():
        tx = insert_expense(
            date=cmd.date or today(),
            amount_cents=amount,
            description=description,
            category=category,
            payment_mode=payment_mode,
        )
        logger.info("Recorded expense %s (%s, %s cents)", tx.id, category, amount)
        return tx

    return run_atomic(_op)


def delete_expense(transaction_id: str) -> None:
    """
    Delete an expense row by id.

    Paired order/purchase rows are rejected here: they only disappear
    together with their owning document.
    """
    def _op():
        tx = db.session.query(Transaction).filter_by(id=transaction_id).first()
        if tx is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if tx.type != TRANSACTION_TYPE_EXPENSE:
            raise ValidationError(
                f"Transaction {transaction_id} belongs to a {tx.type}; delete the {tx.type} instead",
                details={"type": tx.type, "entity_id": tx.entity_id},
            )
        db.session.delete(tx)
        db.session.flush()
        logger.info("Deleted expense %s", transaction_id)

    run_atomic(_op)


# =============================================================================
# READ PATH
# =============================================================================

def list_transactions(
    *,
    type_: str | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Transaction], int]:
    """Journal rows newest first, with the total count for paging."""
    q = db.session.query(Transaction)
    if type_ is not None:
        if type_ not in TRANSACTION_TYPES:
            raise ValidationError(f"Invalid transaction type: {type_}")
        q = q.filter(Transaction.type == type_)
    if start is not None:
        q = q.filter(Transaction.date >= start)
    if end is not None:
        q = q.filter(Transaction.date <= end)

    total = q.count()
    rows = (
        q.order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id)
        .limit(limit)
        .offset(offset)
        .all()
    )
    return rows, total
