# Overview: Flask API routes for the transaction journal and manual expenses.

from flask import Blueprint, request, jsonify, current_app

from ..services import journal_service
from ..services.commands import ExpenseCommand
from ..validation import LedgerError, optional_text, to_int
from .payloads import date_range, error_response, json_body, paging, parse_date, with_retry


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
def list_transactions_route():
    """
    List journal rows, newest first.

    Query params:
    - type: order | purchase | expense
    - start_date / end_date: inclusive ISO dates
    - limit / offset
    """
    try:
        limit, offset = paging()
        start, end = date_range()
        rows, total = journal_service.list_transactions(
            type_=request.args.get("type") or None,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "transactions": [tx.to_dict() for tx in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except LedgerError as e:
        return error_response(e)


@transactions_bp.post("/expenses")
def record_expense_route():
    """
    Record a manual expense.

    Request body:
    {
        "description": "March rent",
        "amount_cents": 50000,
        "category": "Rent",  (optional, defaults to "Other")
        "payment_mode": "Net Banking",  (optional)
        "date": "2024-03-01"  (optional)
    }
    """
    try:
        data = json_body()
        cmd = ExpenseCommand(
            description=data.get("description"),
            amount_cents=to_int(data.get("amount_cents"), "amount_cents"),
            category=optional_text(data.get("category")),
            payment_mode=optional_text(data.get("payment_mode")),
            date=parse_date(data.get("date"), "date"),
        )
        tx = with_retry(lambda: journal_service.record_expense(cmd))
        return jsonify({"transaction": tx.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/expenses/<transaction_id>")
def delete_expense_route(transaction_id: str):
    try:
        with_retry(lambda: journal_service.delete_expense(transaction_id))
        return jsonify({"deleted": transaction_id}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500
