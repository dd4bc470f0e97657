"""
Product Model
"""
from sqlalchemy import Column, String, Numeric, Boolean, Text
from sqlalchemy.orm import relationship
from posledger.core import Base
from .base import UUIDMixin, TimestampMixin

class Product(Base, UUIDMixin, TimestampMixin):
    """Product Master"""
    __tablename__ = "product"
    
    sku = Column(String(100), unique=True, nullable=False, index=True)
    barcode = Column(String(100), index=True)
    name = Column(String(300), nullable=False)
    description = Column(Text)
    buy_price = Column(Numeric(15, 2), default=0, nullable=False)
    sell_price = Column(Numeric(15, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True)
    
    # Cached mirror of the ledger balance, written only by MovementRecorder
    stock = Column(Numeric(15, 2), default=0, nullable=False)
    
    # Relationships
    inventory = relationship("InventoryRecord", back_populates="product", uselist=False)
    stock_movements = relationship("StockMovement", back_populates="product")
    adjustments = relationship("InventoryAdjustment", back_populates="product")
