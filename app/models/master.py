"""
Master Tables: Item, ExPlant, Party, Broker

Maintained by the master-data screens; the ledger only references them.
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from app.core import Base
from .base import IdMixin, TimestampMixin

class Item(Base, IdMixin, TimestampMixin):
    """Traded commodity"""
    __tablename__ = "items"
    
    item_name = Column(String(200), unique=True, nullable=False)
    is_active = Column(Boolean, default=True)
    
    # Relationships
    contracts = relationship("TradeContract", back_populates="item")

class ExPlant(Base, IdMixin, TimestampMixin):
    """Originating plant / warehouse"""
    __tablename__ = "ex_plants"
    
    plant_name = Column(String(200), unique=True, nullable=False)
    is_active = Column(Boolean, default=True)
    
    # Relationships
    contracts = relationship("TradeContract", back_populates="ex_plant")

class Party(Base, IdMixin, TimestampMixin):
    """Counterparty (buyer or seller)"""
    __tablename__ = "parties"
    
    party_name = Column(String(200), nullable=False)
    party_type = Column(String(20))  # buyer, seller, both
    phone = Column(String(30))
    city = Column(String(100))
    
    # Relationships
    contracts = relationship("TradeContract", back_populates="party")

class Broker(Base, IdMixin, TimestampMixin):
    """Broker"""
    __tablename__ = "brokers"
    
    broker_name = Column(String(200), nullable=False)
    phone = Column(String(30))
    
    # Relationships
    contracts = relationship("TradeContract", back_populates="broker")
