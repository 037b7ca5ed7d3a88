# Overview: Flask API routes for the item catalog; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import inventory_service
from ..services.commands import CreateItemCommand, UpdateItemCommand
from ..validation import LedgerError, ValidationError, optional_int, optional_text
from .payloads import error_response, json_body, with_retry


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
def list_items_route():
    """
    List catalog items.

    Query params:
    - search: substring match on name or SKU
    - include_inactive: "true" to include retired items
    """
    search = request.args.get("search")
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    items = inventory_service.list_items(search=search, include_inactive=include_inactive)
    return jsonify({"items": [item.to_dict() for item in items]}), 200


@items_bp.get("/low-stock")
def low_stock_route():
    items = inventory_service.list_low_stock_items()
    return jsonify({"items": [item.to_dict() for item in items]}), 200


@items_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id)
        return jsonify({"item": item.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)


@items_bp.post("")
def create_item_route():
    """
    Create a catalog item.

    Request body:
    {
        "sku": "WIDGET-1",
        "name": "Widget",
        "stock_level": 10,  (optional opening stock)
        "reorder_level": 5,  (optional)
        "unit_cost_cents": 700,  (optional)
        "selling_price_cents": 1000  (optional)
    }
    """
    try:
        data = json_body()
        cmd = CreateItemCommand(
            sku=data.get("sku"),
            name=data.get("name"),
            description=optional_text(data.get("description")),
            stock_level=optional_int(data.get("stock_level"), "stock_level") or 0,
            reorder_level=optional_int(data.get("reorder_level"), "reorder_level") or 0,
            unit_cost_cents=optional_int(data.get("unit_cost_cents"), "unit_cost_cents") or 0,
            selling_price_cents=optional_int(data.get("selling_price_cents"), "selling_price_cents") or 0,
        )
        item = inventory_service.create_item(cmd)
        return jsonify({"item": item.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.put("/<int:item_id>")
def update_item_route(item_id: int):
    """
    Edit an item's master fields; omitted fields keep their values.

    stock_level is rejected here: stock only moves through purchases and orders.
    """
    try:
        data = json_body()
        if "stock_level" in data:
            raise ValidationError(
                "stock_level cannot be edited directly; record a purchase or order instead",
                details={"stock_level": data["stock_level"]},
            )
        is_active = data.get("is_active")
        if is_active is not None and not isinstance(is_active, bool):
            raise ValidationError("is_active must be true or false", details={"is_active": is_active})

        cmd = UpdateItemCommand(
            item_id=item_id,
            sku=data.get("sku"),
            name=data.get("name"),
            description=data.get("description"),
            reorder_level=optional_int(data.get("reorder_level"), "reorder_level"),
            unit_cost_cents=optional_int(data.get("unit_cost_cents"), "unit_cost_cents"),
            selling_price_cents=optional_int(data.get("selling_price_cents"), "selling_price_cents"),
            is_active=is_active,
        )
        item = with_retry(lambda: inventory_service.update_item(cmd))
        return jsonify({"item": item.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.delete("/<int:item_id>")
def delete_item_route(item_id: int):
    try:
        with_retry(lambda: inventory_service.delete_item(item_id))
        return jsonify({"deleted": item_id}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete item")
        return jsonify({"error": "Internal server error"}), 500
