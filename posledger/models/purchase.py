"""
Purchase Models (goods received from suppliers)
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from posledger.core import Base
from .base import UUIDMixin, TimestampMixin

class Purchase(Base, UUIDMixin, TimestampMixin):
    """Purchase Header"""
    __tablename__ = "purchase"
    
    supplier_name = Column(String(200))
    purchase_date = Column(Date)
    status = Column(String(20), default="received")  # pending, received, cancelled
    reference = Column(String(100))
    notes = Column(Text)
    received_by = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="SET NULL"))
    
    # Relationships
    items = relationship("PurchaseItem", back_populates="purchase", cascade="all, delete-orphan")

class PurchaseItem(Base, UUIDMixin):
    """Purchase Line Item"""
    __tablename__ = "purchase_item"
    
    purchase_id = Column(Uuid(as_uuid=True), ForeignKey("purchase.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id", ondelete="SET NULL"))  # null = unmatched line
    barcode = Column(String(100))
    quantity = Column(Numeric(15, 2), nullable=False, default=0)
    purchase_price = Column(Numeric(15, 2), nullable=False, default=0)
    total_price = Column(Numeric(15, 2), nullable=False, default=0)
    
    # Relationships
    purchase = relationship("Purchase", back_populates="items")
    product = relationship("Product")
