from __future__ import annotations

from typing import Any


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999

PAYMENT_MODES = ("Cash", "UPI", "Card", "Net Banking")

EXPENSE_CATEGORIES = (
    "Rent",
    "Utilities",
    "Salaries",
    "Marketing",
    "Office Supplies",
    "Maintenance",
    "Travel",
    "Other",
)


class LedgerError(Exception):
    """Base class for every failure the reconciliation engine reports."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(LedgerError, ValueError):
    """400-level input problem. Raised before anything is committed."""
    status_code = 400


class NotFoundError(LedgerError):
    """Referenced order/purchase/expense/customer no longer exists."""
    status_code = 404


class ConsistencyError(LedgerError):
    """The store rejected part of a revert-then-reapply sequence; nothing was committed."""
    status_code = 409


class ConcurrencyConflict(LedgerError):
    """Optimistic version mismatch on a shared row; retry the whole operation."""
    status_code = 409


def to_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects floats, scientific notation, decimals and booleans.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return to_int(value, field)


def require_text(value: Any, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def enforce_amount(value: int, field: str, *, allow_zero: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer number of cents")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS} ({MAX_AMOUNT_CENTS / 100:,.2f})")
    return value


def enforce_quantity(value: int, field: str = "quantity", *, allow_zero: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    return value


def enforce_payment_mode(value: str | None, *, default: str | None = None) -> str:
    if value is None:
        value = default
    if value not in PAYMENT_MODES:
        raise ValidationError(
            f"Invalid payment mode: {value}. Must be one of {list(PAYMENT_MODES)}",
            details={"payment_mode": value},
        )
    return value


def enforce_category(value: str | None) -> str:
    if value not in EXPENSE_CATEGORIES:
        raise ValidationError(
            f"Invalid expense category: {value}. Must be one of {list(EXPENSE_CATEGORIES)}",
            details={"category": value},
        )
    return value
