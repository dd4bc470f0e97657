"""
Sale Transaction Models (checkout invoices)
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from posledger.core import Base
from .base import UUIDMixin, TimestampMixin

class SaleTransaction(Base, UUIDMixin, TimestampMixin):
    """Sale Invoice Header"""
    __tablename__ = "sale_transaction"
    
    invoice = Column(String(50), unique=True, nullable=False)
    cashier_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="SET NULL"))
    grand_total = Column(Numeric(15, 2), default=0)
    payment_method = Column(String(30))
    payment_status = Column(String(20), default="paid")
    
    # Relationships
    details = relationship("SaleTransactionDetail", back_populates="transaction", cascade="all, delete-orphan")

class SaleTransactionDetail(Base, UUIDMixin):
    """Sale Line Item; price is the line total"""
    __tablename__ = "sale_transaction_detail"
    
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("sale_transaction.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False)
    barcode = Column(String(100))
    quantity = Column(Numeric(15, 2), nullable=False, default=1)
    discount = Column(Numeric(15, 2), default=0)
    price = Column(Numeric(15, 2), nullable=False, default=0)
    
    # Relationships
    transaction = relationship("SaleTransaction", back_populates="details")
    product = relationship("Product")
