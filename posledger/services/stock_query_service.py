"""
Stock Query Service - stock figures derived from the ledger
"""
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, List, Optional, Union
from uuid import UUID
from zoneinfo import ZoneInfo
import logging

from dateutil import parser as date_parser
from sqlalchemy import func
from sqlalchemy.orm import Session

from posledger.core.config import settings
from posledger.core.database import atomic
from posledger.core.exceptions import ConsistencyError, NotFoundError
from posledger.models import (
    InventoryRecord, Product, StockMovement, MovementType, INCOMING_TYPES, OUTGOING_TYPES,
)
from posledger.schemas.stock import InventorySummary, ProductStockCard, StockDrift
from .projections import ProjectionWriter

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

DateBound = Union[datetime, date, str, None]


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _coerce_bound(value: DateBound, end: bool = False) -> Optional[datetime]:
    """
    Accept datetime, date or ISO text and return a UTC instant.

    Whole dates cover the full business day and naive datetimes are read as
    wall-clock time, both in settings.TIMEZONE, the zone journal numbers use.
    """
    if value is None or value == "":
        return None
    business_tz = ZoneInfo(settings.TIMEZONE)
    if isinstance(value, str):
        text = value.strip()
        parsed = date_parser.isoparse(text)
        value = parsed.date() if len(text) == 10 else parsed
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end else time.min, tzinfo=business_tz)
    if value.tzinfo is None:
        value = value.replace(tzinfo=business_tz)
    return value.astimezone(timezone.utc)


def _values_to_str(values) -> List[str]:
    return [v.value for v in values]


class StockQueryService:
    """Read side of the ledger; takes no locks"""
    
    @staticmethod
    def current_stock(db: Session, product_id: UUID) -> Decimal:
        """quantity_after of the newest ledger entry, 0 when the product has none"""
        row = db.query(StockMovement.quantity_after).filter(
            StockMovement.product_id == product_id
        ).order_by(
            StockMovement.created_at.desc(),
            StockMovement.id.desc()
        ).first()
        return _dec(row[0]) if row else ZERO
    
    @staticmethod
    def average_buy_price(db: Session, product_id: UUID) -> Decimal:
        """sum(total_price) / sum(quantity) over purchase entries, 2 decimals"""
        total_amount, total_quantity = db.query(
            func.sum(StockMovement.total_price),
            func.sum(StockMovement.quantity)
        ).filter(
            StockMovement.product_id == product_id,
            StockMovement.movement_type == MovementType.PURCHASE.value
        ).one()
        
        total_quantity = _dec(total_quantity)
        if total_quantity == 0:
            return ZERO.quantize(CENT)
        return (_dec(total_amount) / total_quantity).quantize(CENT, rounding=ROUND_HALF_UP)
    
    @staticmethod
    def stock_history(
        db: Session,
        product_id: UUID,
        date_from: DateBound = None,
        date_to: DateBound = None
    ) -> List[StockMovement]:
        """All ledger entries for a product, newest first, optionally bounded by creation time"""
        query = db.query(StockMovement).filter(StockMovement.product_id == product_id)
        
        start = _coerce_bound(date_from)
        end = _coerce_bound(date_to, end=True)
        if start:
            query = query.filter(StockMovement.created_at >= start)
        if end:
            query = query.filter(StockMovement.created_at <= end)
        
        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()
    
    @staticmethod
    def recent_movements(
        db: Session,
        movement_type: Optional[str] = None,
        limit: int = 50
    ) -> List[StockMovement]:
        """Get recent stock movements across all products"""
        query = db.query(StockMovement)
        
        if movement_type:
            query = query.filter(StockMovement.movement_type == MovementType(movement_type).value)
        
        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()
    
    @staticmethod
    def product_stock_card(db: Session, product_id: UUID) -> ProductStockCard:
        """Per-product totals shown on the stock card"""
        if db.get(Product, product_id) is None:
            raise NotFoundError("product", product_id)
        
        def _sum_for(types) -> Decimal:
            total = db.query(func.sum(StockMovement.quantity)).filter(
                StockMovement.product_id == product_id,
                StockMovement.movement_type.in_(types)
            ).scalar()
            return _dec(total)
        
        return ProductStockCard(
            product_id=product_id,
            current_stock=StockQueryService.current_stock(db, product_id),
            average_buy_price=StockQueryService.average_buy_price(db, product_id),
            total_in=_sum_for(_values_to_str(INCOMING_TYPES)),
            total_out=abs(_sum_for(_values_to_str(OUTGOING_TYPES))),
            total_corrections=_sum_for([MovementType.CORRECTION.value]),
        )
    
    @staticmethod
    def iter_product_chunks(
        db: Session,
        chunk_size: Optional[int] = None,
        for_update: bool = False
    ) -> Iterator[List[Product]]:
        """Page through the catalogue by primary key, chunk_size products at a time"""
        chunk_size = chunk_size or settings.SUMMARY_CHUNK_SIZE
        last_id = None
        while True:
            query = db.query(Product).order_by(Product.id)
            if last_id is not None:
                query = query.filter(Product.id > last_id)
            if for_update:
                query = query.with_for_update()
            chunk = query.limit(chunk_size).all()
            if not chunk:
                break
            last_id = chunk[-1].id
            yield chunk
    
    @staticmethod
    def inventory_summary(db: Session, chunk_size: Optional[int] = None) -> InventorySummary:
        """Catalogue-wide stock value and stock-level counts"""
        summary = InventorySummary()
        threshold = Decimal(settings.LOW_STOCK_THRESHOLD)
        stock_value = ZERO
        sell_value = ZERO
        
        for chunk in StockQueryService.iter_product_chunks(db, chunk_size):
            for product in chunk:
                stock = StockQueryService.current_stock(db, product.id)
                buy_price = StockQueryService.average_buy_price(db, product.id)
                stock_value += stock * buy_price
                sell_value += stock * _dec(product.sell_price)
                
                summary.total_products += 1
                if stock <= 0:
                    summary.out_of_stock_count += 1
                elif stock <= threshold:
                    summary.low_stock_count += 1
        
        summary.total_stock_value = stock_value.quantize(CENT, rounding=ROUND_HALF_UP)
        summary.total_sell_value = sell_value.quantize(CENT, rounding=ROUND_HALF_UP)
        
        summary.total_movements = db.query(func.count(StockMovement.id)).scalar() or 0
        today = datetime.now(ZoneInfo(settings.TIMEZONE)).date()
        start_of_day = datetime.combine(today, time.min, tzinfo=ZoneInfo(settings.TIMEZONE)).astimezone(timezone.utc)
        summary.today_movements = db.query(func.count(StockMovement.id)).filter(
            StockMovement.created_at >= start_of_day
        ).scalar() or 0
        
        return summary
    
    @staticmethod
    def find_drift(db: Session, chunk_size: Optional[int] = None) -> List[StockDrift]:
        """Products whose mirrors disagree with the ledger; nothing is corrected"""
        drifts = []
        for chunk in StockQueryService.iter_product_chunks(db, chunk_size):
            for product in chunk:
                drift = StockQueryService._drift_for(db, product)
                if drift is not None:
                    drifts.append(drift)
        
        if drifts:
            logger.warning(f"Found {len(drifts)} product(s) with ledger/mirror drift")
        return drifts
    
    @staticmethod
    def _drift_for(db: Session, product: Product) -> Optional[StockDrift]:
        ledger_stock = StockQueryService.current_stock(db, product.id)
        inventory = db.query(InventoryRecord).filter(InventoryRecord.product_id == product.id).first()
        inventory_quantity = _dec(inventory.quantity) if inventory else None
        product_stock = _dec(product.stock)
        
        if product_stock == ledger_stock and (
            inventory_quantity == ledger_stock or (inventory is None and ledger_stock == 0)
        ):
            return None
        
        return StockDrift(
            product_id=product.id,
            sku=product.sku,
            ledger_stock=ledger_stock,
            product_stock=product_stock,
            inventory_quantity=inventory_quantity,
        )
    
    @staticmethod
    def assert_consistent(db: Session, product_id: UUID) -> None:
        """Raise ConsistencyError when either mirror disagrees with the ledger"""
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError("product", product_id)
        drift = StockQueryService._drift_for(db, product)
        if drift is not None:
            raise ConsistencyError(
                f"Stock drift on {drift.sku}: ledger={drift.ledger_stock} "
                f"product={drift.product_stock} inventory={drift.inventory_quantity}",
                details=[drift],
            )
    
    @staticmethod
    def sync_from_movements(db: Session, chunk_size: Optional[int] = None) -> int:
        """
        Overwrite both mirrors with the ledger balance for every product.
        
        Each chunk is locked and committed as its own atomic unit so the
        repair never holds the whole catalogue locked.
        """
        chunk_size = chunk_size or settings.SUMMARY_CHUNK_SIZE
        synced = 0
        last_id = None
        
        while True:
            with atomic(db):
                query = db.query(Product).order_by(Product.id)
                if last_id is not None:
                    query = query.filter(Product.id > last_id)
                chunk = query.limit(chunk_size).with_for_update().all()
                
                for product in chunk:
                    ledger_stock = StockQueryService.current_stock(db, product.id)
                    if _dec(product.stock) != ledger_stock:
                        logger.warning(f"Repairing {product.sku}: product.stock {product.stock} -> {ledger_stock}")
                    ProjectionWriter.write(db, product, ledger_stock)
                    synced += 1
                
                if chunk:
                    last_id = chunk[-1].id
            
            if len(chunk) < chunk_size:
                break
        
        logger.info(f"Synced stock mirrors for {synced} product(s)")
        return synced
