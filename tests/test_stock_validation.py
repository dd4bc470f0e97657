from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from posledger.core.exceptions import ValidationError
from posledger.schemas.stock import StockLine
from posledger.services import StockValidationService


def test_sufficient_stock_is_valid(db, make_product, stock_in):
    product = make_product()
    stock_in(product, 10)

    result = StockValidationService.validate_stock(db, [{"product_id": product.id, "quantity": 10}])

    assert result.valid
    assert result.errors == []


def test_insufficient_stock_message(db, make_product, stock_in):
    product = make_product(name="Indomie Goreng")
    stock_in(product, 2)

    result = StockValidationService.validate_stock(db, [{"product_id": product.id, "quantity": 5}])

    assert not result.valid
    [error] = result.errors
    assert error.reason == "insufficient_stock"
    assert error.message == "Insufficient stock for 'Indomie Goreng'. Available: 2, requested: 5"
    assert error.available == 2
    assert error.requested == 5


def test_out_of_stock_message(db, make_product):
    product = make_product(name="Teh Botol")

    result = StockValidationService.validate_stock(db, [{"product_id": product.id, "quantity": 1}])

    [error] = result.errors
    assert error.reason == "out_of_stock"
    assert error.message == "Product 'Teh Botol' is out of stock."


def test_out_of_stock_after_selling_everything(db, make_product, make_sale, stock_in):
    from posledger.services import MovementRecorder

    product = make_product(name="Aqua 600ml")
    stock_in(product, 1)
    MovementRecorder.process_transaction(db, make_sale([(product, 1, 3500)]))

    result = StockValidationService.validate_stock(db, [StockLine(product_id=product.id, quantity=1)])

    assert result.errors[0].reason == "out_of_stock"


def test_unknown_products_and_missing_ids_are_skipped(db):
    result = StockValidationService.validate_stock(db, [
        {"product_id": uuid4(), "quantity": 3},
        {"product_id": None, "quantity": 1},
    ])
    assert result.valid


def test_accepts_cart_objects(db, make_product, stock_in):
    product = make_product()
    stock_in(product, 1)
    line = SimpleNamespace(product_id=product.id, quantity=Decimal("1.5"), price=Decimal("10"))

    result = StockValidationService.validate_stock(db, [line])

    assert result.errors[0].message.endswith("Available: 1, requested: 1.5")


def test_reports_every_short_line(db, make_product, stock_in):
    a = make_product(name="A")
    b = make_product(name="B")
    c = make_product(name="C")
    stock_in(b, 10)

    result = StockValidationService.validate_stock(db, [
        {"product_id": a.id, "quantity": 1},
        {"product_id": b.id, "quantity": 1},
        {"product_id": c.id, "quantity": 1},
    ])

    assert [e.product_name for e in result.errors] == ["A", "C"]


def test_validate_or_fail(db, make_product, stock_in):
    a = make_product(name="A")
    b = make_product(name="B")
    stock_in(b, 1)
    lines = [{"product_id": a.id, "quantity": 1}, {"product_id": b.id, "quantity": 3}]

    with pytest.raises(ValidationError) as exc_info:
        StockValidationService.validate_or_fail(db, lines)

    assert exc_info.value.message == "Product 'A' is out of stock."
    assert len(exc_info.value.errors) == 2


def test_validation_writes_nothing(db, make_product):
    from posledger.models import StockMovement

    product = make_product()
    StockValidationService.validate_stock(db, [{"product_id": product.id, "quantity": 1}])

    assert db.query(StockMovement).count() == 0
