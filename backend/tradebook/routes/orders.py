# Overview: Flask API routes for sales orders and per-order payments.

"""
Order API Routes

DESIGN:
- Create/update/delete run through the order lifecycle (stock, customer
  balance and the order's payment journal row move together)
- PUT accepts any subset of fields; omitted fields keep their values
- POST /<id>/payments records money against one order without touching lines
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service
from ..services.commands import CreateOrderCommand, RecordPaymentCommand, UpdateOrderCommand
from ..validation import LedgerError, optional_int, optional_text, to_int
from .payloads import date_range, error_response, json_body, paging, parse_date, parse_order_lines, with_retry


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
def list_orders_route():
    """
    List orders, newest first.

    Query params: customer_id, payment_status, start_date, end_date, limit, offset
    """
    try:
        limit, offset = paging()
        start, end = date_range()
        rows, total = order_service.list_orders(
            customer_id=request.args.get("customer_id", type=int),
            payment_status=request.args.get("payment_status") or None,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "orders": [o.to_dict(include_lines=False) for o in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except LedgerError as e:
        return error_response(e)


@orders_bp.get("/<order_id>")
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)


@orders_bp.post("")
def create_order_route():
    """
    Create a sales order.

    Request body:
    {
        "customer_id": 1,
        "order_date": "2024-03-01",  (optional)
        "discount_cents": 0,  (optional)
        "amount_paid_cents": 0,  (optional, money received at order time)
        "payment_mode": "Cash",  (optional)
        "delivery_status": "Pending",  (optional)
        "lines": [{"item_id": 1, "quantity": 2, "free_qty": 0, "selling_price_cents": 1000}]
    }
    """
    try:
        data = json_body()
        cmd = CreateOrderCommand(
            customer_id=to_int(data.get("customer_id"), "customer_id"),
            lines=parse_order_lines(data.get("lines")),
            discount_cents=optional_int(data.get("discount_cents"), "discount_cents") or 0,
            amount_paid_cents=optional_int(data.get("amount_paid_cents"), "amount_paid_cents") or 0,
            payment_mode=optional_text(data.get("payment_mode")),
            order_date=parse_date(data.get("order_date"), "order_date"),
            delivery_status=optional_text(data.get("delivery_status")) or "Pending",
        )
        order = with_retry(lambda: order_service.create_order(cmd))
        return jsonify({"order": order.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<order_id>")
def update_order_route(order_id: str):
    try:
        data = json_body()
        cmd = UpdateOrderCommand(
            order_id=order_id,
            lines=parse_order_lines(data["lines"]) if "lines" in data else None,
            discount_cents=optional_int(data.get("discount_cents"), "discount_cents"),
            amount_paid_cents=optional_int(data.get("amount_paid_cents"), "amount_paid_cents"),
            customer_id=optional_int(data.get("customer_id"), "customer_id"),
            payment_mode=optional_text(data.get("payment_mode")),
            order_date=parse_date(data.get("order_date"), "order_date"),
            delivery_status=optional_text(data.get("delivery_status")),
        )
        order = with_retry(lambda: order_service.update_order(cmd))
        return jsonify({"order": order.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<order_id>")
def delete_order_route(order_id: str):
    try:
        with_retry(lambda: order_service.delete_order(order_id))
        return jsonify({"deleted": order_id}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/payments")
def record_order_payment_route(order_id: str):
    """
    Record a payment against a single order.

    Request body:
    {
        "amount_cents": 2500,
        "payment_mode": "Card",  (optional)
        "payment_date": "2024-03-05",  (optional)
        "delivery_status": "Completed"  (optional)
    }

    The amount may not exceed what is still due on the order.
    """
    try:
        data = json_body()
        cmd = RecordPaymentCommand(
            order_id=order_id,
            amount_cents=to_int(data.get("amount_cents"), "amount_cents"),
            payment_mode=optional_text(data.get("payment_mode")),
            payment_date=parse_date(data.get("payment_date"), "payment_date"),
            delivery_status=optional_text(data.get("delivery_status")),
        )
        order = with_retry(lambda: order_service.record_order_payment(cmd))
        return jsonify({"order": order.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record order payment")
        return jsonify({"error": "Internal server error"}), 500
