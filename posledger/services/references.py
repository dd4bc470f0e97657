"""
Resolution of a movement's reference to the business object it came from
"""
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from posledger.models import (
    InventoryAdjustment, Purchase, ReferenceKind, SaleTransaction, StockMovement,
)

# Every ReferenceKind must appear here
REFERENCE_MODELS = {
    ReferenceKind.PURCHASE: Purchase,
    ReferenceKind.TRANSACTION: SaleTransaction,
    ReferenceKind.ADJUSTMENT: InventoryAdjustment,
}

ReferenceTarget = Union[Purchase, SaleTransaction, InventoryAdjustment]


def resolve_reference(db: Session, movement: StockMovement) -> Optional[ReferenceTarget]:
    """Load the purchase, sale or adjustment a movement points at, if any"""
    kind = movement.reference_kind
    if kind is None or not movement.reference_id:
        return None
    model = REFERENCE_MODELS[kind]
    return db.get(model, UUID(movement.reference_id))
