"""
Recalculation Job Schemas
"""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime

class RecalcJobResponse(BaseModel):
    id: int
    kind: str
    status: str
    total: int
    processed: int
    failed: int
    cursor: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = None
    error_message: Optional[str] = None
    cancel_requested: bool
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
