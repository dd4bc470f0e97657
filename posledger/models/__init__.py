from .base import TimestampMixin, UUIDMixin
from .master import AppUser
from .product import Product
from .inventory import (
    InventoryRecord, InventoryAdjustment, JournalCounter, AdjustmentType,
    ADJUSTMENT_INCOMING_TYPES, ADJUSTMENT_OUTGOING_TYPES,
)
from .stock import (
    StockMovement, MovementType, ReferenceKind, INCOMING_TYPES, OUTGOING_TYPES,
    is_incoming, is_outgoing,
)
from .purchase import Purchase, PurchaseItem
from .transaction import SaleTransaction, SaleTransactionDetail

__all__ = [
    # Base
    "TimestampMixin", "UUIDMixin",
    # Master
    "AppUser",
    # Product
    "Product",
    # Inventory
    "InventoryRecord", "InventoryAdjustment", "JournalCounter", "AdjustmentType",
    "ADJUSTMENT_INCOMING_TYPES", "ADJUSTMENT_OUTGOING_TYPES",
    # Stock
    "StockMovement", "MovementType", "ReferenceKind", "INCOMING_TYPES", "OUTGOING_TYPES",
    "is_incoming", "is_outgoing",
    # Purchase
    "Purchase", "PurchaseItem",
    # Sale
    "SaleTransaction", "SaleTransactionDetail",
]
