# Overview: Flask API routes for customers, statements and account payments.

"""
Customer API Routes

Account payments (POST /<id>/payments) are spread over the customer's open
orders oldest-first; whatever is left stays on the account as credit.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import allocation_service, customer_service
from ..services.commands import AllocatePaymentCommand, CreateCustomerCommand, UpdateCustomerCommand
from ..validation import LedgerError, ValidationError, optional_int, optional_text, to_int
from .payloads import error_response, json_body, parse_date, with_retry


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    customers = customer_service.list_customers(search=request.args.get("search"))
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
        return jsonify({"customer": customer.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)


@customers_bp.get("/<int:customer_id>/statement")
def customer_statement_route(customer_id: int):
    try:
        return jsonify(customer_service.get_customer_statement(customer_id)), 200
    except LedgerError as e:
        return error_response(e)


@customers_bp.post("")
def create_customer_route():
    try:
        data = json_body()
        cmd = CreateCustomerCommand(
            name=data.get("name"),
            email=optional_text(data.get("email")),
            phone=optional_text(data.get("phone")),
            address=optional_text(data.get("address")),
            opening_balance_cents=optional_int(data.get("opening_balance_cents"), "opening_balance_cents") or 0,
        )
        customer = customer_service.create_customer(cmd)
        return jsonify({"customer": customer.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    """
    Edit contact details or status ("Active" / "Inactive").

    balance_cents is rejected here: it only moves through orders and payments.
    """
    try:
        data = json_body()
        if "balance_cents" in data:
            raise ValidationError(
                "balance_cents cannot be edited directly; record an order or payment instead",
                details={"balance_cents": data["balance_cents"]},
            )
        cmd = UpdateCustomerCommand(
            customer_id=customer_id,
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
            status=optional_text(data.get("status")),
        )
        customer = with_retry(lambda: customer_service.update_customer(cmd))
        return jsonify({"customer": customer.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    try:
        with_retry(lambda: customer_service.delete_customer(customer_id))
        return jsonify({"deleted": customer_id}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/payments")
def allocate_payment_route(customer_id: int):
    """
    Record one payment from a customer against their account.

    Request body:
    {
        "amount_cents": 7000,
        "payment_mode": "UPI",  (optional, defaults to DEFAULT_PAYMENT_MODE)
        "payment_date": "2024-03-01"  (optional, defaults to today)
    }

    Returns the per-order allocation and any credit left on the account.
    """
    try:
        data = json_body()
        cmd = AllocatePaymentCommand(
            customer_id=customer_id,
            amount_cents=to_int(data.get("amount_cents"), "amount_cents"),
            payment_mode=optional_text(data.get("payment_mode")),
            payment_date=parse_date(data.get("payment_date"), "payment_date"),
        )
        receipt = with_retry(lambda: allocation_service.allocate_customer_payment(cmd))
        return jsonify({"allocation": receipt.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to allocate customer payment")
        return jsonify({"error": "Internal server error"}), 500
