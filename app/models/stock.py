"""
Stock Position - materialized view over the trade and fulfillment ledgers
"""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core import Base
from .base import IdMixin

class StockPosition(Base, IdMixin):
    """Per (item, plant) packs position. Every column is recomputed, never edited."""
    __tablename__ = "stock"
    __table_args__ = (
        UniqueConstraint("item_id", "ex_plant_id", name="uq_stock_item_plant"),
        # NULLs never collide in a unique constraint
        Index(
            "uq_stock_item_no_plant", "item_id", unique=True,
            postgresql_where=text("ex_plant_id IS NULL"),
            sqlite_where=text("ex_plant_id IS NULL")
        ),
    )
    
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    ex_plant_id = Column(Integer, ForeignKey("ex_plants.id"), index=True)
    
    total_purchase_packs = Column(Numeric(14, 3), nullable=False, default=0)
    total_sale_packs = Column(Numeric(14, 3), nullable=False, default=0)
    loaded_purchase_packs = Column(Numeric(14, 3), nullable=False, default=0)
    loaded_sale_packs = Column(Numeric(14, 3), nullable=False, default=0)
    
    # total - loaded, per side; net = pending purchase - pending sale
    pending_purchase_loading = Column(Numeric(14, 3), nullable=False, default=0)
    pending_sale_loading = Column(Numeric(14, 3), nullable=False, default=0)
    net_position_packs = Column(Numeric(14, 3), nullable=False, default=0)
    
    recalculated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    item = relationship("Item")
    ex_plant = relationship("ExPlant")
