from .inventory import InventoryItem
from .customers import Customer
from .orders import Order, OrderLine
from .purchases import Purchase, PurchaseLine
from .transactions import Transaction
from .documents import DocumentSequence

__all__ = [
    'InventoryItem',
    'Customer',
    'Order', 'OrderLine',
    'Purchase', 'PurchaseLine',
    'Transaction',
    'DocumentSequence',
]
