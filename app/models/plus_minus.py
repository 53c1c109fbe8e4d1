"""
Plus/Minus (P&L) Snapshot Model
"""
from sqlalchemy import Column, Integer, Numeric, Date, DateTime, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core import Base
from .base import IdMixin

class PlusMinusSnapshot(Base, IdMixin):
    """Cumulative-to-date weighted-average-cost P&L for one (date, item, plant)"""
    __tablename__ = "plus_minus"
    __table_args__ = (
        UniqueConstraint("snapshot_date", "item_id", "ex_plant_id", name="uq_plus_minus_date_item_plant"),
        Index(
            "uq_plus_minus_date_item_no_plant", "snapshot_date", "item_id", unique=True,
            postgresql_where=text("ex_plant_id IS NULL"),
            sqlite_where=text("ex_plant_id IS NULL")
        ),
    )
    
    snapshot_date = Column(Date, nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    ex_plant_id = Column(Integer, ForeignKey("ex_plants.id"))
    
    # Value (currency)
    buy_total = Column(Numeric(16, 2), nullable=False, default=0)
    sell_total = Column(Numeric(16, 2), nullable=False, default=0)
    
    # Quantities carried in both units so no reader has to guess
    buy_quantity_packs = Column(Numeric(14, 3), nullable=False, default=0)
    buy_quantity_kg = Column(Numeric(16, 3), nullable=False, default=0)
    sell_quantity_packs = Column(Numeric(14, 3), nullable=False, default=0)
    sell_quantity_kg = Column(Numeric(16, 3), nullable=False, default=0)
    
    # Rates are per 10 kg
    avg_buy_rate = Column(Numeric(12, 4), nullable=False, default=0)
    avg_sell_rate = Column(Numeric(12, 4), nullable=False, default=0)
    
    profit = Column(Numeric(16, 2), nullable=False, default=0)
    
    calculated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    item = relationship("Item")
    ex_plant = relationship("ExPlant")
