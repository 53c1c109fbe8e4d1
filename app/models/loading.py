"""
Fulfillment Ledger: physical deliveries (loading) against a contract
"""
from sqlalchemy import Column, String, Integer, Numeric, Date, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.core import Base
from .base import IdMixin, TimestampMixin

class FulfillmentEvent(Base, IdMixin, TimestampMixin):
    """Delivery recorded against exactly one contract"""
    __tablename__ = "loading"
    
    sauda_id = Column(Integer, ForeignKey("sauda.id"), nullable=False, index=True)
    loading_date = Column(Date, nullable=False, index=True)
    vajan_kg = Column(Numeric(14, 3), nullable=False)  # delivered weight
    
    # Transport metadata
    vehicle_no = Column(String(30))
    transport_name = Column(String(200))
    note = Column(Text)
    
    # Relationships
    contract = relationship("TradeContract", back_populates="loadings")
