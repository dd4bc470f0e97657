"""
Stock ledger error taxonomy
"""
from typing import Any, List, Optional


class LedgerError(Exception):
    """Base class for every error raised by the stock ledger"""


class ValidationError(LedgerError):
    """Requested quantity cannot be served from current stock"""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class NotFoundError(LedgerError):
    """A product or referenced record could not be resolved"""

    def __init__(self, kind: str, identifier: Any):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class PersistenceError(LedgerError):
    """Storage failure: lock-wait timeout, constraint violation, write error"""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class ConsistencyError(LedgerError):
    """Ledger and projection mirrors disagree, or a balance would be lost"""

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.details = list(details or [])
