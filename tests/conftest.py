"""
Shared fixtures: in-memory SQLite database, session and document factories
"""
import os

# Settings are read on first import; point them at SQLite before that happens
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from posledger.core import Base
from posledger.core.database import enable_sqlite_pragmas
from posledger.models import (
    AppUser, InventoryRecord, Product, Purchase, PurchaseItem,
    SaleTransaction, SaleTransactionDetail, StockMovement,
)
from posledger.services import MovementRecorder, StockQueryService


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_pragmas(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def user(db):
    u = AppUser(username=f"cashier-{uuid4().hex[:6]}", full_name="Test Cashier")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def make_product(db):
    def _make(sku=None, name="Test Product", buy_price="0", sell_price="0", barcode=None):
        p = Product(
            sku=sku or f"SKU-{uuid4().hex[:8]}",
            name=name,
            barcode=barcode,
            buy_price=Decimal(buy_price),
            sell_price=Decimal(sell_price),
        )
        db.add(p)
        db.commit()
        return p
    return _make


@pytest.fixture
def make_purchase(db):
    """lines: (product or None, quantity, unit purchase price)"""
    def _make(lines, supplier_name="PT Sumber Makmur"):
        purchase = Purchase(supplier_name=supplier_name, status="received")
        for product, qty, price in lines:
            qty, price = Decimal(str(qty)), Decimal(str(price))
            purchase.items.append(PurchaseItem(
                product_id=product.id if product else None,
                quantity=qty,
                purchase_price=price,
                total_price=qty * price,
            ))
        db.add(purchase)
        db.commit()
        return purchase
    return _make


@pytest.fixture
def make_sale(db):
    """lines: (product, quantity, unit sell price); detail price is the line total"""
    def _make(lines, invoice=None):
        sale = SaleTransaction(invoice=invoice or f"TRX-{uuid4().hex[:8].upper()}")
        total = Decimal("0")
        for product, qty, unit_price in lines:
            qty, unit_price = Decimal(str(qty)), Decimal(str(unit_price))
            sale.details.append(SaleTransactionDetail(
                product_id=product.id,
                quantity=qty,
                price=qty * unit_price,
            ))
            total += qty * unit_price
        sale.grand_total = total
        db.add(sale)
        db.commit()
        return sale
    return _make


@pytest.fixture
def stock_in(db):
    """Receive stock through a plain purchase movement"""
    def _stock_in(product, qty, unit_price="0"):
        return MovementRecorder.record_movement(db, product.id, "purchase", qty, unit_price=unit_price)
    return _stock_in


def assert_ledger_consistent(db):
    """Mirror agreement and balance continuity for every product"""
    for product in db.query(Product).all():
        ledger = StockQueryService.current_stock(db, product.id)
        inventory = db.query(InventoryRecord).filter(InventoryRecord.product_id == product.id).first()
        assert ledger >= 0
        assert Decimal(product.stock) == ledger
        if inventory is not None:
            assert Decimal(inventory.quantity) == ledger
        else:
            assert ledger == 0

    for m in db.query(StockMovement).all():
        expected = Decimal(m.quantity_before) + Decimal(m.quantity)
        assert Decimal(m.quantity_after) == max(Decimal("0"), expected)


@pytest.fixture
def ledger_consistent(db):
    return lambda: assert_ledger_consistent(db)
