"""
Stock Validation - pre-flight check before a sale is committed
"""
from decimal import Decimal
from typing import Any, Iterable
import logging

from sqlalchemy.orm import Session

from posledger.core.exceptions import ValidationError
from posledger.models import Product
from posledger.schemas.stock import StockLine, StockShortage, StockValidationResult
from .stock_query_service import StockQueryService

logger = logging.getLogger(__name__)


def _fmt(value: Decimal) -> str:
    return f"{Decimal(value).normalize():f}"


def _coerce_line(raw: Any) -> StockLine:
    # Accept StockLine, plain dicts, and cart/detail objects with product_id + quantity
    if isinstance(raw, StockLine):
        return raw
    return StockLine.model_validate(raw, from_attributes=not isinstance(raw, dict))


class StockValidationService:
    """
    Advisory check of requested quantities against ledger stock.
    
    No product lock is held, so stock can change before the sale is recorded;
    MovementRecorder.process_transaction(enforce_stock=True) repeats the check
    under the lock.
    """
    
    @staticmethod
    def validate_stock(db: Session, lines: Iterable[Any]) -> StockValidationResult:
        errors = []
        
        for raw in lines:
            line = _coerce_line(raw)
            if line.product_id is None:
                continue
            product = db.get(Product, line.product_id)
            if product is None:
                logger.debug(f"Skipping validation for unknown product {line.product_id}")
                continue
            
            available = StockQueryService.current_stock(db, product.id)
            requested = line.quantity
            
            if available <= 0:
                errors.append(StockShortage(
                    product_id=product.id,
                    product_name=product.name,
                    reason="out_of_stock",
                    message=f"Product '{product.name}' is out of stock.",
                    available=available,
                    requested=requested,
                ))
            elif available < requested:
                errors.append(StockShortage(
                    product_id=product.id,
                    product_name=product.name,
                    reason="insufficient_stock",
                    message=(
                        f"Insufficient stock for '{product.name}'. "
                        f"Available: {_fmt(available)}, requested: {_fmt(requested)}"
                    ),
                    available=available,
                    requested=requested,
                ))
        
        return StockValidationResult(valid=not errors, errors=errors)
    
    @staticmethod
    def validate_or_fail(db: Session, lines: Iterable[Any]) -> None:
        """Raise ValidationError carrying every shortage, message of the first"""
        result = StockValidationService.validate_stock(db, lines)
        if not result.valid:
            raise ValidationError(result.errors[0].message, errors=result.errors)
