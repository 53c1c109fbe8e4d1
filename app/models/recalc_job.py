"""
Recalculation Job Model - Track maintenance backfills
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON
import enum
from datetime import datetime

from app.core import Base
from .base import IdMixin


class RecalcJobKind(str, enum.Enum):
    STOCK = "stock"
    PLUS_MINUS = "plus_minus"


class RecalcJobStatus(str, enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"  # finished, some units failed
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class RecalcJob(Base, IdMixin):
    """One run of a recalculate-all backfill"""
    __tablename__ = "recalc_job"
    
    kind = Column(String(20), nullable=False)
    status = Column(String(20), default=RecalcJobStatus.PENDING.value, nullable=False)
    
    # Progress: cursor is the label of the last unit handled;
    # done_units lists every label already rebuilt, skipped on resume
    total = Column(Integer, default=0, nullable=False)
    processed = Column(Integer, default=0, nullable=False)
    failed = Column(Integer, default=0, nullable=False)
    cursor = Column(String(50))
    done_units = Column(JSON, default=list)
    
    # [{"unit": "...", "error": "..."}]
    errors = Column(JSON, default=list)
    error_message = Column(String(500))
    
    cancel_requested = Column(Boolean, default=False, nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
