"""
Transaction journal and expense tests.
"""

from datetime import date

import pytest

from tradebook.extensions import db
from tradebook.models import Transaction
from tradebook.services import journal_service
from tradebook.services.commands import ExpenseCommand
from tradebook.validation import NotFoundError, ValidationError


def _expense(**overrides):
    fields = {"description": "March rent", "amount_cents": 50000, "category": "Rent", "date": date(2024, 3, 1)}
    fields.update(overrides)
    return journal_service.record_expense(ExpenseCommand(**fields))


class TestExpenses:

    def test_record_expense(self, db_session):
        tx = _expense(payment_mode="Net Banking")

        assert tx.type == "expense"
        assert tx.entity_id is None
        assert tx.category == "Rent"
        assert tx.payment_mode == "Net Banking"
        assert tx.amount_cents == 50000

    def test_defaults(self, db_session):
        tx = _expense(category=None, date=None)

        assert tx.category == "Other"
        assert tx.payment_mode == "Cash"
        assert tx.date is not None

    def test_expenses_are_independent_rows(self, db_session):
        first = _expense()
        second = _expense()

        assert first.id != second.id
        journal_service.delete_expense(first.id)

        assert db.session.get(Transaction, first.id) is None
        assert db.session.get(Transaction, second.id) is not None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"description": ""},
            {"amount_cents": 0},
            {"amount_cents": -10},
            {"category": "Lunch"},
            {"payment_mode": "Barter"},
        ],
    )
    def test_invalid_expense(self, db_session, overrides):
        with pytest.raises(ValidationError):
            _expense(**overrides)
        assert db.session.query(Transaction).count() == 0

    def test_delete_missing_expense(self, db_session):
        with pytest.raises(NotFoundError):
            journal_service.delete_expense("missing")

    def test_paired_rows_cannot_be_deleted_as_expenses(self, item, place_purchase):
        purchase = place_purchase(item, 1, 100)

        with pytest.raises(ValidationError) as exc:
            journal_service.delete_expense(purchase.id)

        assert exc.value.details["type"] == "purchase"
        assert db.session.get(Transaction, purchase.id) is not None


class TestPairedRows:

    def test_upsert_replaces_existing_row(self, db_session):
        journal_service.upsert_for_entity(
            "entity-1", "purchase", date=date(2024, 1, 1), amount_cents=100, description="first"
        )
        journal_service.upsert_for_entity(
            "entity-1", "purchase", date=date(2024, 1, 2), amount_cents=300, description="second"
        )
        db.session.commit()

        rows = db.session.query(Transaction).filter_by(entity_id="entity-1").all()
        assert [(r.id, r.amount_cents, r.description) for r in rows] == [("entity-1", 300, "second")]

    def test_remove_for_entity(self, db_session):
        journal_service.upsert_for_entity(
            "entity-2", "order", date=date(2024, 1, 1), amount_cents=100, description="payment"
        )
        assert journal_service.remove_for_entity("entity-2", "order") is True
        assert journal_service.remove_for_entity("entity-2", "order") is False

    def test_expense_type_is_not_paired(self, db_session):
        with pytest.raises(ValueError):
            journal_service.get_for_entity("x", "expense")


def test_list_transactions_filters(item, customer, place_purchase, place_order):
    place_purchase(item, 1, 100, purchase_date=date(2024, 1, 5))
    place_order(customer, item, 1, price_cents=1000, paid_cents=1000, order_date=date(2024, 2, 5))
    _expense(date=date(2024, 3, 5))

    rows, total = journal_service.list_transactions()
    assert total == 3
    assert [r.type for r in rows] == ["expense", "order", "purchase"]

    rows, total = journal_service.list_transactions(type_="order")
    assert total == 1

    rows, total = journal_service.list_transactions(start=date(2024, 2, 1), end=date(2024, 2, 28))
    assert [r.type for r in rows] == ["order"]

    with pytest.raises(ValidationError):
        journal_service.list_transactions(type_="refund")
