"""
Stock ledger maintenance commands

    posledger init-db
    posledger sync
    posledger check
    posledger summary
    posledger history <product-id-or-sku> [--from DATE] [--to DATE]
"""
import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID
from zoneinfo import ZoneInfo

from posledger.core import settings, engine, Base, session_scope
from posledger.models import Product
from posledger.services import StockQueryService

logger = logging.getLogger(__name__)


def _local_time(ts: datetime) -> datetime:
    # SQLite hands back naive UTC
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(ZoneInfo(settings.TIMEZONE))


def _find_product(db, key: str) -> Optional[Product]:
    try:
        return db.get(Product, UUID(key))
    except ValueError:
        return db.query(Product).filter(Product.sku == key).first()


def cmd_init_db(args) -> int:
    Base.metadata.create_all(bind=engine)
    print("Tables created")
    return 0


def cmd_sync(args) -> int:
    with session_scope() as db:
        synced = StockQueryService.sync_from_movements(db, chunk_size=args.chunk_size)
    print(f"Synced {synced} product(s) from stock movements")
    return 0


def cmd_check(args) -> int:
    with session_scope() as db:
        drifts = StockQueryService.find_drift(db, chunk_size=args.chunk_size)
    if not drifts:
        print("Ledger and stock mirrors agree")
        return 0
    for d in drifts:
        print(f"[{d.sku}] ledger={d.ledger_stock} product={d.product_stock} inventory={d.inventory_quantity}")
    print(f"{len(drifts)} product(s) drifted; run `posledger sync` to repair")
    return 1


def cmd_summary(args) -> int:
    with session_scope() as db:
        summary = StockQueryService.inventory_summary(db, chunk_size=args.chunk_size)
    print(summary.model_dump_json(indent=2))
    return 0


def cmd_history(args) -> int:
    with session_scope() as db:
        product = _find_product(db, args.product)
        if not product:
            print(f"Error: Product '{args.product}' not found.")
            return 2

        movements = StockQueryService.stock_history(db, product.id, args.date_from, args.date_to)
        print(f"\n--- Stock history: [{product.sku}] {product.name} ---")
        for m in movements:
            journal = f" {m.journal_number}" if m.journal_number else ""
            print(
                f"{_local_time(m.created_at):%Y-%m-%d %H:%M:%S} {m.movement_type:<15} {m.quantity:>10} "
                f"{m.quantity_before:>10} -> {m.quantity_after:<10}{journal} {m.notes or ''}"
            )
        if not movements:
            print("No movements.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="posledger", description="Stock ledger maintenance")
    parser.add_argument("--chunk-size", type=int, default=None, help="Products per chunk")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables").set_defaults(func=cmd_init_db)
    sub.add_parser("sync", help="Rewrite stock mirrors from the ledger").set_defaults(func=cmd_sync)
    sub.add_parser("check", help="Report ledger/mirror drift without fixing it").set_defaults(func=cmd_check)
    sub.add_parser("summary", help="Inventory value and stock-level counts").set_defaults(func=cmd_summary)

    history = sub.add_parser("history", help="Ledger entries of one product")
    history.add_argument("product", help="Product UUID or SKU")
    history.add_argument("--from", dest="date_from", default=None)
    history.add_argument("--to", dest="date_to", default=None)
    history.set_defaults(func=cmd_history)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
