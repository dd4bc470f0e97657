"""
Movement Recorder - the only writer of the stock ledger and its mirrors

Every public operation is one atomic unit. Product rows touched by the
operation are locked FOR UPDATE in product-id order before any balance is
read, so writers of the same product serialize and multi-line documents
cannot deadlock against each other.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from posledger.core.config import settings
from posledger.core.database import atomic
from posledger.core.exceptions import ConsistencyError, NotFoundError, ValidationError
from posledger.models import (
    AdjustmentType, ADJUSTMENT_INCOMING_TYPES, InventoryAdjustment, MovementType,
    Product, Purchase, ReferenceKind, SaleTransaction, StockMovement,
    is_incoming, is_outgoing,
)
from posledger.schemas.stock import StockLine
from .journal_sequencer import JournalSequencer
from .ledger_store import LedgerStore
from .projections import ProjectionWriter
from .stock_query_service import StockQueryService
from .stock_validation import StockValidationService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

Reference = Tuple[Optional[ReferenceKind], Optional[str]]


@dataclass(frozen=True)
class AdjustmentResult:
    adjustment: InventoryAdjustment
    movement: StockMovement


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _product_id(product: Union[Product, UUID]) -> UUID:
    return product.id if isinstance(product, Product) else product


def _reference(kind, reference_id) -> Reference:
    if kind is None:
        return None, None
    return ReferenceKind(kind), (str(reference_id) if reference_id is not None else None)


def signed_quantity(movement_type: MovementType, quantity) -> Decimal:
    """Incoming types add, outgoing types subtract, corrections keep their sign"""
    quantity = _dec(quantity)
    if is_incoming(movement_type):
        return abs(quantity)
    if is_outgoing(movement_type):
        return -abs(quantity)
    return quantity


class MovementRecorder:
    """Purchase receipts, sales, reversals and manual adjustments"""

    # ===================== LOCKING & BOOKKEEPING =====================

    @staticmethod
    def _lock_products(db: Session, product_ids: Iterable[Optional[UUID]]) -> Dict[UUID, Product]:
        ids = sorted({pid for pid in product_ids if pid is not None})
        if not ids:
            return {}
        rows = db.query(Product).filter(
            Product.id.in_(ids)
        ).order_by(Product.id).with_for_update().all()
        return {p.id: p for p in rows}

    @staticmethod
    def _lock_product(db: Session, product_id: UUID) -> Product:
        product = MovementRecorder._lock_products(db, [product_id]).get(product_id)
        if product is None:
            raise NotFoundError("product", product_id)
        return product

    @staticmethod
    def _next_balance(product: Product, movement_type: MovementType, before: Decimal, delta: Decimal) -> Decimal:
        after = before + delta
        if after >= 0:
            return after
        if settings.REJECT_NEGATIVE_STOCK:
            raise ConsistencyError(
                f"{movement_type.value} of {abs(delta)} on {product.sku} would leave {after}; "
                f"only {before} on hand"
            )
        logger.warning(
            f"Clamped {product.sku} at zero: {movement_type.value} {delta} on balance {before} "
            f"({-after} unit(s) not backed by stock)"
        )
        return ZERO

    @staticmethod
    def _append(
        db: Session,
        product: Product,
        movement_type: MovementType,
        quantity: Decimal,
        unit_price: Decimal = ZERO,
        total_price: Optional[Decimal] = None,
        reference: Reference = (None, None),
        user_id: Optional[UUID] = None,
        notes: Optional[str] = None,
        journal_number: Optional[str] = None,
    ) -> StockMovement:
        """Append one entry and write both mirrors; the product must already be locked"""
        before = StockQueryService.current_stock(db, product.id)
        after = MovementRecorder._next_balance(product, movement_type, before, quantity)
        if total_price is None:
            total_price = (unit_price * abs(quantity)).quantize(CENT, rounding=ROUND_HALF_UP)

        kind, reference_id = reference
        entry = StockMovement(
            product_id=product.id,
            user_id=user_id,
            movement_type=movement_type.value,
            reference_type=kind.value if kind else None,
            reference_id=reference_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            quantity_before=before,
            quantity_after=after,
            journal_number=journal_number,
            notes=notes,
        )
        LedgerStore.append(db, entry)
        ProjectionWriter.write(db, product, after)

        logger.info(f"{movement_type.value} {quantity:+} on {product.sku}: {before} -> {after}")
        return entry

    # ===================== GENERIC =====================

    @staticmethod
    def record_movement(
        db: Session,
        product_id: UUID,
        movement_type: Union[MovementType, str],
        quantity,
        unit_price=ZERO,
        note: Optional[str] = None,
        reference_type: Optional[Union[ReferenceKind, str]] = None,
        reference_id=None,
        user_id: Optional[UUID] = None,
        total_price=None,
    ) -> StockMovement:
        """Record a single movement of any type using the incoming/outgoing sign convention"""
        movement_type = MovementType(movement_type)
        reference = _reference(reference_type, reference_id)
        quantity = signed_quantity(movement_type, quantity)

        with atomic(db):
            product = MovementRecorder._lock_product(db, product_id)
            entry = MovementRecorder._append(
                db, product, movement_type, quantity,
                unit_price=_dec(unit_price),
                total_price=_dec(total_price) if total_price is not None else None,
                reference=reference,
                user_id=user_id,
                notes=note,
            )
        return entry

    # ===================== PURCHASES =====================

    @staticmethod
    def process_purchase(db: Session, purchase: Purchase, user_id: Optional[UUID] = None) -> List[StockMovement]:
        """Receive every resolved purchase line into stock; unresolved lines are skipped"""
        entries = []
        with atomic(db):
            db.flush()
            items = list(purchase.items)
            products = MovementRecorder._lock_products(db, [item.product_id for item in items])

            for item in items:
                product = products.get(item.product_id)
                if product is None:
                    logger.info(f"Purchase {purchase.id}: skipping line {item.id} without a resolved product")
                    continue
                entries.append(MovementRecorder._append(
                    db, product, MovementType.PURCHASE, abs(_dec(item.quantity)),
                    unit_price=_dec(item.purchase_price),
                    total_price=_dec(item.total_price),
                    reference=(ReferenceKind.PURCHASE, str(purchase.id)),
                    user_id=user_id,
                    notes=f"Purchase from {purchase.supplier_name}",
                ))
        return entries

    @staticmethod
    def reverse_purchase(db: Session, purchase: Purchase, user_id: Optional[UUID] = None) -> List[StockMovement]:
        """
        Append a negative correction for every purchase line.

        Stock already sold since the receipt is not checked; the balance is
        clamped at zero instead.
        """
        entries = []
        with atomic(db):
            db.flush()
            items = list(purchase.items)
            products = MovementRecorder._lock_products(db, [item.product_id for item in items])

            for item in items:
                product = products.get(item.product_id)
                if product is None:
                    continue
                entries.append(MovementRecorder._append(
                    db, product, MovementType.CORRECTION, -abs(_dec(item.quantity)),
                    unit_price=_dec(item.purchase_price),
                    total_price=-_dec(item.total_price),
                    reference=(ReferenceKind.PURCHASE, str(purchase.id)),
                    user_id=user_id,
                    notes=f"Reversed purchase from {purchase.supplier_name}",
                ))
        return entries

    # ===================== SALES =====================

    @staticmethod
    def _sale_products(db: Session, sale: SaleTransaction):
        details = list(sale.details)
        products = MovementRecorder._lock_products(db, [d.product_id for d in details])
        for detail in details:
            if detail.product_id not in products:
                raise NotFoundError("product", detail.product_id)
        return details, products

    @staticmethod
    def process_transaction(
        db: Session,
        sale: SaleTransaction,
        user_id: Optional[UUID] = None,
        enforce_stock: Optional[bool] = None,
    ) -> List[StockMovement]:
        """Take every sold line out of stock as one unit"""
        if enforce_stock is None:
            enforce_stock = settings.ENFORCE_STOCK_ON_SALE

        entries = []
        with atomic(db):
            db.flush()
            details, products = MovementRecorder._sale_products(db, sale)

            if enforce_stock:
                requested: Dict[UUID, Decimal] = {}
                for detail in details:
                    requested[detail.product_id] = requested.get(detail.product_id, ZERO) + abs(_dec(detail.quantity))
                StockValidationService.validate_or_fail(
                    db, [StockLine(product_id=pid, quantity=qty) for pid, qty in requested.items()]
                )

            for detail in details:
                quantity = abs(_dec(detail.quantity))
                line_total = _dec(detail.price)
                unit_price = (line_total / quantity).quantize(CENT, rounding=ROUND_HALF_UP) if quantity else ZERO
                entries.append(MovementRecorder._append(
                    db, products[detail.product_id], MovementType.SALE, -quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                    reference=(ReferenceKind.TRANSACTION, str(sale.id)),
                    user_id=user_id,
                    notes=f"Sale invoice: {sale.invoice}",
                ))
        return entries

    @staticmethod
    def reverse_transaction(db: Session, sale: SaleTransaction, user_id: Optional[UUID] = None) -> List[StockMovement]:
        """Put every sold line back into stock as a return"""
        entries = []
        with atomic(db):
            db.flush()
            details, products = MovementRecorder._sale_products(db, sale)

            for detail in details:
                quantity = abs(_dec(detail.quantity))
                line_total = _dec(detail.price)
                unit_price = (line_total / quantity).quantize(CENT, rounding=ROUND_HALF_UP) if quantity else ZERO
                entries.append(MovementRecorder._append(
                    db, products[detail.product_id], MovementType.RETURN, quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                    reference=(ReferenceKind.TRANSACTION, str(sale.id)),
                    user_id=user_id,
                    notes=f"Return for invoice: {sale.invoice}",
                ))
        return entries

    # ===================== MANUAL ADJUSTMENTS =====================

    @staticmethod
    def _adjust_locked(
        db: Session,
        product: Product,
        quantity: Decimal,
        adjustment_type: AdjustmentType,
        reason: Optional[str],
        notes: Optional[str],
        user_id: Optional[UUID],
        on=None,
    ) -> AdjustmentResult:
        if adjustment_type == AdjustmentType.CORRECTION:
            incoming = quantity >= 0
        else:
            incoming = adjustment_type in ADJUSTMENT_INCOMING_TYPES
        change = abs(quantity) if incoming else -abs(quantity)
        movement_type = MovementType.ADJUSTMENT_IN if incoming else MovementType.ADJUSTMENT_OUT

        journal_number = JournalSequencer.next_journal_number(db, on=on)

        adjustment = InventoryAdjustment(
            journal_number=journal_number,
            product_id=product.id,
            user_id=user_id,
            type=adjustment_type.value,
            quantity_change=change,
            reason=reason,
            notes=notes,
        )
        db.add(adjustment)
        db.flush()

        movement = MovementRecorder._append(
            db, product, movement_type, change,
            unit_price=ZERO,
            total_price=ZERO,
            reference=(ReferenceKind.ADJUSTMENT, str(adjustment.id)),
            user_id=user_id,
            notes=reason or notes,
            journal_number=journal_number,
        )
        return AdjustmentResult(adjustment=adjustment, movement=movement)

    @staticmethod
    def create_adjustment(
        db: Session,
        product: Union[Product, UUID],
        quantity,
        adjustment_type: Union[AdjustmentType, str],
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        user_id: Optional[UUID] = None,
        on=None,
    ) -> AdjustmentResult:
        """Manual adjustment with a journal number: one adjustment record plus one ledger entry"""
        try:
            adjustment_type = AdjustmentType(adjustment_type)
        except ValueError:
            raise ValidationError(f"Unsupported adjustment type: {adjustment_type}")

        with atomic(db):
            locked = MovementRecorder._lock_product(db, _product_id(product))
            result = MovementRecorder._adjust_locked(
                db, locked, _dec(quantity), adjustment_type, reason, notes, user_id, on=on
            )
            journal_number = result.adjustment.journal_number

        logger.info(f"Adjustment {journal_number} ({adjustment_type.value}) recorded")
        return result

    @staticmethod
    def stock_correction(
        db: Session,
        product: Union[Product, UUID],
        new_quantity,
        reason: Optional[str] = None,
        user_id: Optional[UUID] = None,
        on=None,
    ) -> AdjustmentResult:
        """Set stock to an absolute counted quantity via an in/out adjustment"""
        new_quantity = _dec(new_quantity)
        if new_quantity < 0:
            raise ValidationError(f"Counted quantity cannot be negative: {new_quantity}")

        with atomic(db):
            locked = MovementRecorder._lock_product(db, _product_id(product))
            current = StockQueryService.current_stock(db, locked.id)
            difference = new_quantity - current
            adjustment_type = AdjustmentType.ADJUSTMENT_IN if difference >= 0 else AdjustmentType.ADJUSTMENT_OUT
            result = MovementRecorder._adjust_locked(
                db, locked, abs(difference), adjustment_type,
                reason or f"Stock correction: set from {current} to {new_quantity}",
                None, user_id, on=on,
            )
        return result
