from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .config import settings
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

# Create engine
connect_args = {}
if "sqlite" in settings.DATABASE_URL:
    connect_args["check_same_thread"] = False
    # Busy wait for the write lock, the SQLite counterpart of lock_timeout
    connect_args["timeout"] = settings.LOCK_TIMEOUT_MS / 1000

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=settings.DEBUG
)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    # Hand transaction control to SQLAlchemy; pysqlite would otherwise defer BEGIN to the first write
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn):
    # SQLite has no row locks; take the database write lock before any balance is read
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def enable_sqlite_pragmas(target_engine) -> None:
    """
    WAL for concurrent readers, enforced foreign keys, and BEGIN IMMEDIATE
    so writers serialize the way FOR UPDATE makes them on PostgreSQL.

    Every transaction holds the write lock until it ends; close or roll
    back read-only sessions promptly.
    """
    event.listen(target_engine, "connect", _set_sqlite_pragma)
    event.listen(target_engine, "begin", _begin_immediate)


if "sqlite" in settings.DATABASE_URL:
    enable_sqlite_pragmas(engine)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


@contextmanager
def session_scope():
    """Session for scripts and jobs; always closed on exit"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _apply_lock_timeout(db: Session) -> None:
    # lock_timeout is PostgreSQL only; is_local=true scopes it to this transaction
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(
        text("SELECT set_config('lock_timeout', :timeout, true)"),
        {"timeout": f"{settings.LOCK_TIMEOUT_MS}ms"},
    )


@contextmanager
def atomic(db: Session):
    """
    One atomic unit of work.

    Commits when the block exits cleanly. Any exception rolls the whole unit
    back; database errors surface as PersistenceError (retryable for lock
    timeouts, deadlocks and unique conflicts), everything else is re-raised
    unchanged.
    """
    try:
        _apply_lock_timeout(db)
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        retryable = isinstance(exc, (OperationalError, IntegrityError))
        logger.warning(f"Rolled back atomic unit ({type(exc).__name__}, retryable={retryable})")
        raise PersistenceError(str(getattr(exc, "orig", None) or exc), retryable=retryable) from exc
    except Exception:
        db.rollback()
        raise
