# Overview: Shared request parsing for the ledger API; turns JSON bodies into service commands.

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from ..services.commands import OrderLineInput, PurchaseLineInput
from ..services.concurrency import retry_on_conflict
from ..time_utils import parse_iso_date
from ..validation import LedgerError, ValidationError, optional_int, optional_text, to_int

"""
Money and quantities are accepted as integers only (cents, units).
Dates are ISO-8601 ("YYYY-MM-DD" or a full datetime; the UTC date part is used).
"""


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_date(value: Any, field: str):
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 date", details={field: value})


def _line_list(raw: Any) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("lines must be a non-empty list")
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError("Every line must be an object", details={"line": index})
    return raw


def parse_purchase_lines(raw: Any) -> list[PurchaseLineInput]:
    return [
        PurchaseLineInput(
            item_id=to_int(entry.get("item_id"), "item_id"),
            quantity=to_int(entry.get("quantity"), "quantity"),
            unit_price_cents=to_int(entry.get("unit_price_cents"), "unit_price_cents"),
            description=optional_text(entry.get("description")),
        )
        for entry in _line_list(raw)
    ]


def parse_order_lines(raw: Any) -> list[OrderLineInput]:
    return [
        OrderLineInput(
            item_id=to_int(entry.get("item_id"), "item_id"),
            quantity=to_int(entry.get("quantity"), "quantity"),
            free_qty=optional_int(entry.get("free_qty"), "free_qty") or 0,
            unit_price_cents=optional_int(entry.get("unit_price_cents"), "unit_price_cents"),
            selling_price_cents=optional_int(entry.get("selling_price_cents"), "selling_price_cents"),
            description=optional_text(entry.get("description")),
        )
        for entry in _line_list(raw)
    ]


def paging() -> tuple[int, int]:
    limit = request.args.get("limit", default=current_app.config["DEFAULT_PAGE_SIZE"], type=int)
    offset = request.args.get("offset", default=0, type=int)
    return max(1, min(limit, 500)), max(0, offset)


def date_range() -> tuple:
    return (
        parse_date(request.args.get("start_date"), "start_date"),
        parse_date(request.args.get("end_date"), "end_date"),
    )


def with_retry(func):
    """Run a whole service call, re-running it when it loses a version race."""
    return retry_on_conflict(
        func,
        attempts=current_app.config["CONFLICT_RETRY_ATTEMPTS"],
        backoff_base=current_app.config["CONFLICT_RETRY_BACKOFF"],
    )


def error_response(exc: LedgerError):
    """The one JSON shape every route returns for a ledger error."""
    return jsonify({"error": exc.message, "details": exc.details}), exc.status_code
