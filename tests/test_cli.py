import json
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from posledger import cli
from posledger.core import settings
from posledger.models import StockMovement
from posledger.services import LedgerStore


@pytest.fixture
def run(db, monkeypatch):
    @contextmanager
    def scope():
        yield db

    monkeypatch.setattr(cli, "session_scope", scope)
    return lambda *argv: cli.main(list(argv))


def test_summary_prints_json(run, make_product, stock_in, capsys):
    product = make_product(sell_price="15")
    stock_in(product, 20, unit_price=10)

    assert run("summary") == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["total_products"] == 1
    assert Decimal(summary["total_stock_value"]) == Decimal("200")
    assert summary["total_movements"] == 1


def test_check_and_sync(run, db, make_product, stock_in, capsys):
    product = make_product(sku="KOPI-01")
    stock_in(product, 5)
    product.stock = Decimal("9")
    db.commit()

    assert run("check") == 1
    assert "[KOPI-01] ledger=5" in capsys.readouterr().out

    assert run("--chunk-size", "1", "sync") == 0
    assert "Synced 1 product(s)" in capsys.readouterr().out

    assert run("check") == 0
    assert "agree" in capsys.readouterr().out


def test_history_by_sku(run, make_product, stock_in, capsys):
    product = make_product(sku="GULA-1", name="Gula Pasir")
    stock_in(product, 3)

    assert run("history", "GULA-1") == 0

    out = capsys.readouterr().out
    assert "[GULA-1] Gula Pasir" in out
    assert "purchase" in out


def test_history_by_id_with_empty_range(run, make_product, stock_in, capsys):
    product = make_product()
    stock_in(product, 3)

    assert run("history", str(product.id), "--to", "2000-01-01") == 0
    assert "No movements." in capsys.readouterr().out


def test_history_unknown_product(run, capsys):
    assert run("history", "NOPE") == 2
    assert "not found" in capsys.readouterr().out


def test_history_prints_business_local_time(run, db, make_product, monkeypatch, capsys):
    monkeypatch.setattr(settings, "TIMEZONE", "Asia/Jakarta")
    product = make_product(sku="BERAS-5")
    LedgerStore.append(db, StockMovement(
        product_id=product.id, movement_type="purchase", quantity=Decimal("1"),
        quantity_before=Decimal("0"), quantity_after=Decimal("1"),
        created_at=datetime(2026, 1, 1, 23, 0, tzinfo=timezone.utc),
    ))
    db.commit()

    assert run("history", "BERAS-5", "--from", "2026-01-02", "--to", "2026-01-02") == 0

    assert "2026-01-02 06:00:00 purchase" in capsys.readouterr().out
