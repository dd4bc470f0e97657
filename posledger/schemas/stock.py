"""
Stock Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID

class StockLine(BaseModel):
    """One requested line for the stock validation gate"""
    product_id: Optional[UUID] = None
    quantity: Decimal = Decimal("0")

class StockShortage(BaseModel):
    product_id: UUID
    product_name: str
    reason: str  # out_of_stock, insufficient_stock
    message: str
    available: Decimal
    requested: Decimal

class StockValidationResult(BaseModel):
    valid: bool
    errors: List[StockShortage] = Field(default_factory=list)

class StockMovementRead(BaseModel):
    id: int
    product_id: UUID
    user_id: Optional[UUID]
    movement_type: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    reference_type: Optional[str]
    reference_id: Optional[str]
    journal_number: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True

class InventorySummary(BaseModel):
    total_products: int = 0
    total_stock_value: Decimal = Decimal("0")
    total_sell_value: Decimal = Decimal("0")
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    total_movements: int = 0
    today_movements: int = 0

class ProductStockCard(BaseModel):
    product_id: UUID
    current_stock: Decimal
    average_buy_price: Decimal
    total_in: Decimal
    total_out: Decimal
    total_corrections: Decimal

class StockDrift(BaseModel):
    """A product whose mirrors disagree with the ledger"""
    product_id: UUID
    sku: str
    ledger_stock: Decimal
    product_stock: Decimal
    inventory_quantity: Optional[Decimal]
