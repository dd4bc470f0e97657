"""
Base Model Mixins
"""
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Uuid
import uuid

def utcnow() -> datetime:
    """Application-side UTC clock; every timestamp column is stamped from here"""
    return datetime.now(timezone.utc)

class UUIDMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

class TimestampMixin:
    """created_at / updated_at in UTC, independent of the database server clock"""
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
