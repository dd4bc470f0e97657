# Pydantic Schemas Package
from .stock import (
    StockLine, StockShortage, StockValidationResult, StockMovementRead,
    InventorySummary, ProductStockCard, StockDrift,
)

__all__ = [
    "StockLine", "StockShortage", "StockValidationResult", "StockMovementRead",
    "InventorySummary", "ProductStockCard", "StockDrift",
]
