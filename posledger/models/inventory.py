"""
Inventory Models: projection row, manual adjustments, journal counter
"""
import enum

from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from posledger.core import Base
from .base import UUIDMixin, TimestampMixin


class AdjustmentType(str, enum.Enum):
    ADJUSTMENT_IN = "adjustment_in"
    ADJUSTMENT_OUT = "adjustment_out"
    RETURN = "return"
    DAMAGE = "damage"
    CORRECTION = "correction"  # direction follows the sign of the quantity


ADJUSTMENT_INCOMING_TYPES = frozenset({AdjustmentType.ADJUSTMENT_IN, AdjustmentType.RETURN})
ADJUSTMENT_OUTGOING_TYPES = frozenset({AdjustmentType.ADJUSTMENT_OUT, AdjustmentType.DAMAGE})


class InventoryRecord(Base, UUIDMixin, TimestampMixin):
    """Per-product inventory row; second cached mirror of the ledger balance"""
    __tablename__ = "inventory"
    
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id", ondelete="CASCADE"), unique=True, nullable=False)
    barcode = Column(String(100), index=True)
    quantity = Column(Numeric(15, 2), default=0, nullable=False)
    
    # Relationships
    product = relationship("Product", back_populates="inventory")


class InventoryAdjustment(Base, UUIDMixin, TimestampMixin):
    """Journal record of a manual adjustment, paired 1:1 with a ledger entry"""
    __tablename__ = "inventory_adjustment"
    
    journal_number = Column(String(30), unique=True, nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="SET NULL"))
    
    type = Column(String(20), nullable=False, default=AdjustmentType.ADJUSTMENT_IN.value)
    quantity_change = Column(Numeric(15, 2), nullable=False, default=0)
    reason = Column(Text)
    notes = Column(Text)
    
    # Relationships
    product = relationship("Product", back_populates="adjustments")
    user = relationship("AppUser", back_populates="adjustments")


class JournalCounter(Base):
    """Per-day sequence for journal numbers; one row per (prefix, day)"""
    __tablename__ = "journal_counter"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    prefix = Column(String(10), nullable=False)
    date_key = Column(Integer, nullable=False)  # YYYYMMDD
    next_seq = Column(Integer, nullable=False, default=1)
    
    __table_args__ = (
        UniqueConstraint("prefix", "date_key", name="uq_journal_counter_prefix_day"),
    )
