"""
Stock Ledger Model
"""
import enum

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Text, Uuid, Index, event
from sqlalchemy.orm import relationship
from posledger.core import Base
from posledger.core.exceptions import PersistenceError
from .base import utcnow


class MovementType(str, enum.Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    ADJUSTMENT_IN = "adjustment_in"
    ADJUSTMENT_OUT = "adjustment_out"
    RETURN = "return"
    DAMAGE = "damage"
    CORRECTION = "correction"  # reconciliation only, neither incoming nor outgoing


INCOMING_TYPES = frozenset({MovementType.PURCHASE, MovementType.ADJUSTMENT_IN, MovementType.RETURN})
OUTGOING_TYPES = frozenset({MovementType.SALE, MovementType.ADJUSTMENT_OUT, MovementType.DAMAGE})


def is_incoming(movement_type) -> bool:
    return MovementType(movement_type) in INCOMING_TYPES


def is_outgoing(movement_type) -> bool:
    return MovementType(movement_type) in OUTGOING_TYPES


class ReferenceKind(str, enum.Enum):
    """Business object a movement originates from"""
    PURCHASE = "purchase"
    TRANSACTION = "transaction"
    ADJUSTMENT = "adjustment"


class StockMovement(Base):
    """Stock Movement Ledger (append-only)"""
    __tablename__ = "stock_movement"
    
    # Integer key doubles as insertion order for tie-breaking
    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="SET NULL"))
    
    # Movement info
    movement_type = Column(String(20), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)  # Positive in, negative out
    unit_price = Column(Numeric(15, 2), nullable=False, default=0)
    total_price = Column(Numeric(15, 2), nullable=False, default=0)
    
    # Running balance snapshot
    quantity_before = Column(Numeric(15, 2), nullable=False, default=0)
    quantity_after = Column(Numeric(15, 2), nullable=False, default=0)
    
    # Reference
    reference_type = Column(String(30))  # purchase, transaction, adjustment
    reference_id = Column(String(50))  # ID of related record
    
    # Metadata
    journal_number = Column(String(30), unique=True)  # adjustments only
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    # Relationships
    product = relationship("Product", back_populates="stock_movements")
    user = relationship("AppUser", back_populates="stock_movements")
    
    __table_args__ = (
        Index("ix_stock_movement_product_created", "product_id", "created_at", "id"),
        Index("ix_stock_movement_product_type", "product_id", "movement_type"),
        Index("ix_stock_movement_reference", "reference_type", "reference_id"),
    )
    
    @property
    def reference_kind(self):
        return ReferenceKind(self.reference_type) if self.reference_type else None
    
    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.movement_type} product={self.product_id} qty={self.quantity} "
            f"before={self.quantity_before} after={self.quantity_after}>"
        )


@event.listens_for(StockMovement, "before_update")
def _reject_update(mapper, connection, target):
    raise PersistenceError(f"stock movement {target.id} is append-only and cannot be updated")


@event.listens_for(StockMovement, "before_delete")
def _reject_delete(mapper, connection, target):
    raise PersistenceError(f"stock movement {target.id} is append-only and cannot be deleted")
