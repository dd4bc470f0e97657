"""
Journal Sequencer - day-scoped numbers for manual adjustments

Format: PREFIX + YYYYMMDD + zero-padded sequence, e.g. ADJ202610190001.
"""
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posledger.core.config import settings
from posledger.core.exceptions import PersistenceError
from posledger.models import JournalCounter

logger = logging.getLogger(__name__)


def _date_key(d: date) -> int:
    return int(d.strftime("%Y%m%d"))


class JournalSequencer:
    
    @staticmethod
    def business_date() -> date:
        return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
    
    @staticmethod
    def _locked_counter(db: Session, prefix: str, date_key: int) -> Optional[JournalCounter]:
        return (
            db.query(JournalCounter)
            .filter(JournalCounter.prefix == prefix, JournalCounter.date_key == date_key)
            .with_for_update()
            .first()
        )
    
    @staticmethod
    def _ensure_counter(db: Session, prefix: str, date_key: int) -> None:
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            # No upsert: create inside a savepoint, a concurrent creator wins the unique key
            try:
                with db.begin_nested():
                    db.add(JournalCounter(prefix=prefix, date_key=date_key, next_seq=1))
            except IntegrityError:
                logger.debug(f"Journal counter {prefix}/{date_key} created concurrently")
            return
        
        db.execute(
            insert(JournalCounter)
            .values(prefix=prefix, date_key=date_key, next_seq=1)
            .on_conflict_do_nothing(index_elements=["prefix", "date_key"])
        )
    
    @staticmethod
    def next_journal_number(db: Session, on: Optional[date] = None, prefix: Optional[str] = None) -> str:
        """
        Reserve the next journal number for the day.
        
        The per-day counter row is locked FOR UPDATE until the surrounding
        transaction ends, so concurrent adjustments on the same day queue on
        it and can never draw the same sequence. Rolled-back transactions
        release their number again.
        """
        on = on or JournalSequencer.business_date()
        prefix = prefix or settings.JOURNAL_PREFIX
        dk = _date_key(on)
        
        counter = JournalSequencer._locked_counter(db, prefix, dk)
        if counter is None:
            JournalSequencer._ensure_counter(db, prefix, dk)
            counter = JournalSequencer._locked_counter(db, prefix, dk)
            if counter is None:
                raise PersistenceError(f"Journal counter {prefix}/{dk} could not be created", retryable=True)
        
        seq = int(counter.next_seq or 1)
        counter.next_seq = seq + 1
        db.flush()
        
        return f"{prefix}{dk}{seq:0{settings.JOURNAL_SEQUENCE_PAD}d}"
