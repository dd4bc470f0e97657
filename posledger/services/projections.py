"""
Projection mirrors: Product.stock and InventoryRecord.quantity
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from posledger.models import InventoryRecord, Product


class ProjectionWriter:
    """Write-through of the ledger balance into both cached mirrors"""
    
    @staticmethod
    def get_or_create_inventory(db: Session, product: Product) -> InventoryRecord:
        inventory = db.query(InventoryRecord).filter(InventoryRecord.product_id == product.id).first()
        if inventory is None:
            inventory = InventoryRecord(
                product_id=product.id,
                barcode=product.barcode,
                quantity=product.stock or Decimal("0"),
            )
            db.add(inventory)
            db.flush()
        return inventory
    
    @staticmethod
    def write(db: Session, product: Product, quantity: Decimal) -> InventoryRecord:
        """Set both mirrors to the ledger balance; caller holds the product lock"""
        product.stock = quantity
        inventory = ProjectionWriter.get_or_create_inventory(db, product)
        inventory.quantity = quantity
        if product.barcode:
            inventory.barcode = product.barcode
        db.flush()
        return inventory
