"""
Sauda (Trade Contract) Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from app.models.trade import TradeType


def _normalize_type(value):
    # Older clients send "sell"
    if isinstance(value, str) and value.lower() == "sell":
        return TradeType.SALE.value
    return value.lower() if isinstance(value, str) else value


class SaudaCreate(BaseModel):
    sauda_no: Optional[str] = None
    transaction_type: TradeType
    trade_date: date
    party_id: int
    item_id: int
    ex_plant_id: Optional[int] = None
    broker_id: Optional[int] = None
    quantity_packs: int = Field(gt=0)
    rate_per_10kg: Decimal = Field(gt=0)
    delivery_condition: Optional[str] = None
    payment_condition: Optional[str] = None
    loading_due_date: Optional[date] = None
    remarks: Optional[str] = None

    @field_validator("transaction_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return _normalize_type(value)

class SaudaUpdate(BaseModel):
    sauda_no: Optional[str] = None
    transaction_type: Optional[TradeType] = None
    trade_date: Optional[date] = None
    party_id: Optional[int] = None
    item_id: Optional[int] = None
    ex_plant_id: Optional[int] = None
    broker_id: Optional[int] = None
    quantity_packs: Optional[int] = Field(default=None, gt=0)
    rate_per_10kg: Optional[Decimal] = Field(default=None, gt=0)
    delivery_condition: Optional[str] = None
    payment_condition: Optional[str] = None
    loading_due_date: Optional[date] = None
    remarks: Optional[str] = None

    @field_validator("transaction_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return _normalize_type(value)

class SaudaResponse(BaseModel):
    id: int
    sauda_no: str
    transaction_type: str
    trade_date: date
    party_id: int
    item_id: int
    ex_plant_id: Optional[int]
    broker_id: Optional[int]
    quantity_packs: int
    rate_per_10kg: float
    pending_quantity_packs: int
    delivery_condition: Optional[str]
    payment_condition: Optional[str]
    loading_due_date: Optional[date]
    remarks: Optional[str]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
