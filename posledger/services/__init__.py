# Services Package
from .ledger_store import LedgerStore
from .projections import ProjectionWriter
from .journal_sequencer import JournalSequencer
from .stock_query_service import StockQueryService
from .stock_validation import StockValidationService
from .movement_recorder import MovementRecorder, AdjustmentResult
from .references import resolve_reference
from .retry import call_with_retry

__all__ = [
    "LedgerStore",
    "ProjectionWriter",
    "JournalSequencer",
    "StockQueryService",
    "StockValidationService",
    "MovementRecorder",
    "AdjustmentResult",
    "resolve_reference",
    "call_with_retry",
]
