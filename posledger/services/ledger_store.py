"""
Ledger Store - append-only persistence of stock movements
"""
from decimal import Decimal
import logging

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from posledger.core.exceptions import ConsistencyError, PersistenceError
from posledger.models import StockMovement

logger = logging.getLogger(__name__)


class LedgerStore:
    """The only writer of stock_movement rows; there is no update or delete"""
    
    @staticmethod
    def append(db: Session, entry: StockMovement) -> StockMovement:
        """Insert one ledger entry and flush it so the balance is visible inside the transaction"""
        if entry.id is not None:
            raise PersistenceError(f"stock movement {entry.id} is already stored")
        
        before = Decimal(entry.quantity_before)
        after = Decimal(entry.quantity_after)
        expected = before + Decimal(entry.quantity)
        # Either exact continuity, or a decrement clamped at zero
        if after < 0 or (after != expected and not (expected < 0 and after == 0)):
            raise ConsistencyError(
                f"Broken balance for product {entry.product_id}: "
                f"{before} {Decimal(entry.quantity):+} -> {after}"
            )
        
        db.add(entry)
        try:
            db.flush()
        except SQLAlchemyError as exc:
            retryable = isinstance(exc, (OperationalError, IntegrityError))
            raise PersistenceError(f"Could not store stock movement: {exc}", retryable=retryable) from exc
        
        logger.debug(f"Appended ledger entry {entry.id} ({entry.movement_type}) for product {entry.product_id}")
        return entry
