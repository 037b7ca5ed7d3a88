# Overview: Explicit command types for every ledger operation.

"""
Each lifecycle operation takes exactly one command object. A command lists
the fields that operation understands; there are no partial dicts merged
into entities.

For updates, a field left as None keeps its committed value. Any update of
an order or purchase goes through revert-then-reapply, so the fields that
trigger deltas are:

- purchases: lines (stock, unit cost, journal amount)
- orders: lines, discount_cents, amount_paid_cents, customer_id
  (stock, customer balance, journal amount)

Header-only fields (dates, payment mode, supplier name, delivery status)
ride along with the same revert-then-reapply pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


# =============================================================================
# PURCHASES
# =============================================================================

@dataclass(frozen=True)
class PurchaseLineInput:
    item_id: int
    quantity: int
    unit_price_cents: int
    description: str | None = None


@dataclass(frozen=True)
class CreatePurchaseCommand:
    supplier_name: str
    lines: list[PurchaseLineInput] = field(default_factory=list)
    payment_mode: str | None = None
    purchase_date: date | None = None


@dataclass(frozen=True)
class UpdatePurchaseCommand:
    purchase_id: str
    lines: list[PurchaseLineInput] = field(default_factory=list)
    supplier_name: str | None = None
    payment_mode: str | None = None
    purchase_date: date | None = None


# =============================================================================
# ORDERS
# =============================================================================

@dataclass(frozen=True)
class OrderLineInput:
    item_id: int
    quantity: int
    free_qty: int = 0
    # Defaults to the item's selling price
    unit_price_cents: int | None = None
    # Defaults to unit_price_cents
    selling_price_cents: int | None = None
    description: str | None = None


@dataclass(frozen=True)
class CreateOrderCommand:
    customer_id: int
    lines: list[OrderLineInput] = field(default_factory=list)
    discount_cents: int = 0
    amount_paid_cents: int = 0
    payment_mode: str | None = None
    order_date: date | None = None
    delivery_status: str = "Pending"


@dataclass(frozen=True)
class UpdateOrderCommand:
    order_id: str
    lines: list[OrderLineInput] | None = None
    discount_cents: int | None = None
    amount_paid_cents: int | None = None
    customer_id: int | None = None
    payment_mode: str | None = None
    order_date: date | None = None
    delivery_status: str | None = None


@dataclass(frozen=True)
class RecordPaymentCommand:
    order_id: str
    amount_cents: int
    payment_mode: str | None = None
    payment_date: date | None = None
    # Optional delivery status change made with the payment
    delivery_status: str | None = None


@dataclass(frozen=True)
class AllocatePaymentCommand:
    customer_id: int
    amount_cents: int
    payment_mode: str | None = None
    payment_date: date | None = None


# =============================================================================
# EXPENSES / MASTER DATA
# =============================================================================

@dataclass(frozen=True)
class ExpenseCommand:
    description: str
    amount_cents: int
    category: str | None = None
    payment_mode: str | None = None
    date: date | None = None


@dataclass(frozen=True)
class CreateItemCommand:
    sku: str
    name: str
    description: str | None = None
    stock_level: int = 0
    reorder_level: int = 0
    unit_cost_cents: int = 0
    selling_price_cents: int = 0


@dataclass(frozen=True)
class CreateCustomerCommand:
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    opening_balance_cents: int = 0


@dataclass(frozen=True)
class UpdateItemCommand:
    """Master fields only; stock_level moves through purchases and orders."""
    item_id: int
    sku: str | None = None
    name: str | None = None
    description: str | None = None
    reorder_level: int | None = None
    unit_cost_cents: int | None = None
    selling_price_cents: int | None = None
    is_active: bool | None = None


@dataclass(frozen=True)
class UpdateCustomerCommand:
    """Contact fields and status; balance_cents moves through orders and payments."""
    customer_id: int
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    status: str | None = None
