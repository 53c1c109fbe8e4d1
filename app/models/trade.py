"""
Trade Ledger: purchase / sale contracts (sauda)
"""
import enum
from sqlalchemy import Column, String, Integer, Numeric, Date, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from app.core import Base
from .base import IdMixin, TimestampMixin


class TradeType(str, enum.Enum):
    PURCHASE = "purchase"
    SALE = "sale"


class TradeContract(Base, IdMixin, TimestampMixin):
    """Purchase or sale agreement for an item at a plant"""
    __tablename__ = "sauda"
    __table_args__ = (
        Index("ix_sauda_item_plant", "item_id", "ex_plant_id"),
    )
    
    sauda_no = Column(String(30), unique=True, nullable=False)  # e.g. 202425/0001
    transaction_type = Column(String(10), nullable=False, index=True)  # purchase, sale
    trade_date = Column(Date, nullable=False, index=True)
    
    party_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    ex_plant_id = Column(Integer, ForeignKey("ex_plants.id"))
    broker_id = Column(Integer, ForeignKey("brokers.id"))
    
    quantity_packs = Column(Integer, nullable=False)  # 1 pack = 1000 kg
    rate_per_10kg = Column(Numeric(12, 2), nullable=False)
    
    delivery_condition = Column(String(100))
    payment_condition = Column(String(100))
    loading_due_date = Column(Date)
    remarks = Column(Text)
    
    # Derived: written only by the pending-quantity updater
    pending_quantity_packs = Column(Integer, nullable=False)
    
    # Relationships
    party = relationship("Party", back_populates="contracts")
    item = relationship("Item", back_populates="contracts")
    ex_plant = relationship("ExPlant", back_populates="contracts")
    broker = relationship("Broker", back_populates="contracts")
    loadings = relationship("FulfillmentEvent", back_populates="contract", order_by="FulfillmentEvent.loading_date")

    @property
    def position_key(self):
        return (self.item_id, self.ex_plant_id)
