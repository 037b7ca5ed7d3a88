# Overview: Flask API routes for supplier purchases; parses input and returns JSON responses.

"""
Purchase API Routes

Every write goes through the purchase lifecycle: stock, item cost and the
purchase's journal row change together or not at all.
"""

from flask import Blueprint, jsonify, current_app

from ..services import purchase_service
from ..services.commands import CreatePurchaseCommand, UpdatePurchaseCommand
from ..validation import LedgerError, optional_text
from .payloads import date_range, error_response, json_body, paging, parse_date, parse_purchase_lines, with_retry


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
def list_purchases_route():
    try:
        limit, offset = paging()
        start, end = date_range()
        rows, total = purchase_service.list_purchases(start=start, end=end, limit=limit, offset=offset)
        return jsonify({
            "purchases": [p.to_dict(include_lines=False) for p in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except LedgerError as e:
        return error_response(e)


@purchases_bp.get("/<purchase_id>")
def get_purchase_route(purchase_id: str):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)


@purchases_bp.post("")
def create_purchase_route():
    """
    Record a supplier purchase.

    Request body:
    {
        "supplier_name": "Acme Supplies",
        "purchase_date": "2024-03-01",  (optional)
        "payment_mode": "Cash",  (optional)
        "lines": [{"item_id": 1, "quantity": 10, "unit_price_cents": 700}]
    }
    """
    try:
        data = json_body()
        cmd = CreatePurchaseCommand(
            supplier_name=data.get("supplier_name"),
            lines=parse_purchase_lines(data.get("lines")),
            payment_mode=optional_text(data.get("payment_mode")),
            purchase_date=parse_date(data.get("purchase_date"), "purchase_date"),
        )
        purchase = with_retry(lambda: purchase_service.create_purchase(cmd))
        return jsonify({"purchase": purchase.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.put("/<purchase_id>")
def update_purchase_route(purchase_id: str):
    """Replace a purchase's lines; header fields left out keep their values."""
    try:
        data = json_body()
        cmd = UpdatePurchaseCommand(
            purchase_id=purchase_id,
            lines=parse_purchase_lines(data.get("lines")),
            supplier_name=optional_text(data.get("supplier_name")),
            payment_mode=optional_text(data.get("payment_mode")),
            purchase_date=parse_date(data.get("purchase_date"), "purchase_date"),
        )
        purchase = with_retry(lambda: purchase_service.update_purchase(cmd))
        return jsonify({"purchase": purchase.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.delete("/<purchase_id>")
def delete_purchase_route(purchase_id: str):
    try:
        with_retry(lambda: purchase_service.delete_purchase(purchase_id))
        return jsonify({"deleted": purchase_id}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"error": "Internal server error"}), 500
