"""
Audit Log Model
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from app.core import Base
from .base import IdMixin

class AuditLog(Base, IdMixin):
    """Audit Log for tracking ledger edits"""
    __tablename__ = "audit_log"
    
    table_name = Column(String(100), nullable=False, index=True)
    record_id = Column(String(50), nullable=False, index=True)
    
    action = Column(String(20), nullable=False)  # UPDATE, DELETE
    
    performed_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    
    # Before/After data
    before_data = Column(JSON)
    after_data = Column(JSON)
