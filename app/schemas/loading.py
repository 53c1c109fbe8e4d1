"""
Loading (Fulfillment Event) Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from decimal import Decimal

class LoadingCreate(BaseModel):
    sauda_id: int
    loading_date: date
    vajan_kg: Decimal = Field(gt=0)
    vehicle_no: Optional[str] = None
    transport_name: Optional[str] = None
    note: Optional[str] = None

class LoadingUpdate(BaseModel):
    sauda_id: Optional[int] = None
    loading_date: Optional[date] = None
    vajan_kg: Optional[Decimal] = Field(default=None, gt=0)
    vehicle_no: Optional[str] = None
    transport_name: Optional[str] = None
    note: Optional[str] = None

class LoadingResponse(BaseModel):
    id: int
    sauda_id: int
    loading_date: date
    vajan_kg: float
    vehicle_no: Optional[str]
    transport_name: Optional[str]
    note: Optional[str]

    class Config:
        from_attributes = True
