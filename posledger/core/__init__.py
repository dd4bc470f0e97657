from .config import settings
from .database import engine, SessionLocal, Base, atomic, session_scope
from .exceptions import (
    LedgerError, ValidationError, NotFoundError, PersistenceError, ConsistencyError
)

__all__ = [
    "settings", "engine", "SessionLocal", "Base", "atomic", "session_scope",
    "LedgerError", "ValidationError", "NotFoundError", "PersistenceError", "ConsistencyError",
]
