"""
Master Tables: AppUser
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from posledger.core import Base
from .base import UUIDMixin, TimestampMixin

class AppUser(Base, UUIDMixin, TimestampMixin):
    """Application User (cashier, stock keeper, admin)"""
    __tablename__ = "app_user"
    
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(200))
    full_name = Column(String(200))
    is_active = Column(Boolean, default=True)
    
    # Relationships
    stock_movements = relationship("StockMovement", back_populates="user")
    adjustments = relationship("InventoryAdjustment", back_populates="user")
