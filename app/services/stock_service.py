"""
Stock Service - position recalculation and stock reporting
"""
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from typing import List, Optional, Dict, Tuple
from decimal import Decimal
import logging

from app.core import advisory_lock
from app.models import TradeContract, TradeType, FulfillmentEvent, StockPosition, Item, ExPlant
from .units import Quantity

logger = logging.getLogger(__name__)

PositionKey = Tuple[int, Optional[int]]


def plant_filter(column, ex_plant_id: Optional[int]):
    """`= NULL` never matches, so a missing plant needs IS NULL."""
    if ex_plant_id is None:
        return column.is_(None)
    return column == ex_plant_id


def sort_keys(keys) -> List[PositionKey]:
    return sorted(set(keys), key=lambda k: (k[0], -1 if k[1] is None else k[1]))


class StockService:
    """Stock position business logic"""
    
    @staticmethod
    def _contract_packs(db: Session, item_id: int, ex_plant_id: Optional[int], transaction_type: TradeType) -> Quantity:
        total = db.query(func.sum(TradeContract.quantity_packs)).filter(
            TradeContract.item_id == item_id,
            plant_filter(TradeContract.ex_plant_id, ex_plant_id),
            TradeContract.transaction_type == transaction_type.value
        ).scalar()
        return Quantity.packs(total)
    
    @staticmethod
    def _loaded(db: Session, item_id: int, ex_plant_id: Optional[int], transaction_type: TradeType) -> Quantity:
        total_kg = db.query(func.sum(FulfillmentEvent.vajan_kg)).join(
            TradeContract, FulfillmentEvent.sauda_id == TradeContract.id
        ).filter(
            TradeContract.item_id == item_id,
            plant_filter(TradeContract.ex_plant_id, ex_plant_id),
            TradeContract.transaction_type == transaction_type.value
        ).scalar()
        return Quantity.kg(total_kg).to_packs()
    
    @staticmethod
    def compute_position(db: Session, item_id: int, ex_plant_id: Optional[int]) -> Dict[str, Decimal]:
        """Full recomputation of one (item, plant) position from both ledgers"""
        total_purchase = StockService._contract_packs(db, item_id, ex_plant_id, TradeType.PURCHASE)
        total_sale = StockService._contract_packs(db, item_id, ex_plant_id, TradeType.SALE)
        loaded_purchase = StockService._loaded(db, item_id, ex_plant_id, TradeType.PURCHASE)
        loaded_sale = StockService._loaded(db, item_id, ex_plant_id, TradeType.SALE)
        
        pending_purchase = total_purchase - loaded_purchase
        pending_sale = total_sale - loaded_sale
        
        return {
            "total_purchase_packs": total_purchase.quantized(),
            "total_sale_packs": total_sale.quantized(),
            "loaded_purchase_packs": loaded_purchase.quantized(),
            "loaded_sale_packs": loaded_sale.quantized(),
            "pending_purchase_loading": pending_purchase.quantized(),
            "pending_sale_loading": pending_sale.quantized(),
            "net_position_packs": (pending_purchase - pending_sale).quantized(),
        }
    
    @staticmethod
    def recalculate(db: Session, item_id: int, ex_plant_id: Optional[int]) -> StockPosition:
        """Recompute and upsert the position row. Idempotent."""
        advisory_lock(db, "stock", item_id, ex_plant_id)
        
        figures = StockService.compute_position(db, item_id, ex_plant_id)
        
        position = db.query(StockPosition).filter(
            StockPosition.item_id == item_id,
            plant_filter(StockPosition.ex_plant_id, ex_plant_id)
        ).first()
        if not position:
            position = StockPosition(item_id=item_id, ex_plant_id=ex_plant_id)
            db.add(position)
        
        for field, value in figures.items():
            setattr(position, field, value)
        
        db.flush()
        logger.debug(f"Stock recalculated for item={item_id} plant={ex_plant_id}: net {figures['net_position_packs']}")
        return position
    
    @staticmethod
    def position_keys(db: Session) -> List[PositionKey]:
        """Every (item, plant) with a contract or an existing position row"""
        keys = db.query(TradeContract.item_id, TradeContract.ex_plant_id).distinct().all()
        keys += db.query(StockPosition.item_id, StockPosition.ex_plant_id).all()
        return sort_keys((k[0], k[1]) for k in keys)
    
    @staticmethod
    def verify_positions(db: Session) -> List[Dict]:
        """Compare stored positions with a fresh computation. Read-only."""
        drift = []
        for item_id, ex_plant_id in StockService.position_keys(db):
            expected = StockService.compute_position(db, item_id, ex_plant_id)
            stored = db.query(StockPosition).filter(
                StockPosition.item_id == item_id,
                plant_filter(StockPosition.ex_plant_id, ex_plant_id)
            ).first()
            
            if not stored:
                drift.append({"item_id": item_id, "ex_plant_id": ex_plant_id, "missing": True, "fields": {}})
                continue
            
            fields = {}
            for field, value in expected.items():
                current = Decimal(str(getattr(stored, field) or 0))
                if current != value:
                    fields[field] = {"stored": float(current), "expected": float(value)}
            if fields:
                drift.append({"item_id": item_id, "ex_plant_id": ex_plant_id, "missing": False, "fields": fields})
        
        return drift
    
    # ===================== READS =====================
    
    @staticmethod
    def _position_query(db: Session):
        return db.query(StockPosition, Item.item_name, ExPlant.plant_name).join(
            Item, StockPosition.item_id == Item.id
        ).outerjoin(
            ExPlant, StockPosition.ex_plant_id == ExPlant.id
        )
    
    @staticmethod
    def _to_dict(position: StockPosition, item_name: str, plant_name: Optional[str]) -> Dict:
        return {
            "id": position.id,
            "item_id": position.item_id,
            "item_name": item_name,
            "ex_plant_id": position.ex_plant_id,
            "ex_plant_name": plant_name,
            "total_purchase_packs": float(position.total_purchase_packs or 0),
            "total_sale_packs": float(position.total_sale_packs or 0),
            "loaded_purchase_packs": float(position.loaded_purchase_packs or 0),
            "loaded_sale_packs": float(position.loaded_sale_packs or 0),
            "pending_purchase_loading": float(position.pending_purchase_loading or 0),
            "pending_sale_loading": float(position.pending_sale_loading or 0),
            "net_position_packs": float(position.net_position_packs or 0),
            "recalculated_at": position.recalculated_at.isoformat() if position.recalculated_at else None,
        }
    
    @staticmethod
    def get_positions(db: Session, include_zero: bool = True) -> List[Dict]:
        """All positions, optionally only those with something open"""
        query = StockService._position_query(db)
        
        if not include_zero:
            query = query.filter(
                or_(
                    StockPosition.net_position_packs != 0,
                    StockPosition.pending_purchase_loading > 0,
                    StockPosition.pending_sale_loading > 0
                )
            )
        
        rows = query.order_by(Item.item_name, ExPlant.plant_name).all()
        return [StockService._to_dict(p, item_name, plant_name) for p, item_name, plant_name in rows]
    
    @staticmethod
    def get_positions_by_item(db: Session, item_id: int, ex_plant_id: Optional[int] = None) -> List[Dict]:
        query = StockService._position_query(db).filter(StockPosition.item_id == item_id)
        if ex_plant_id is not None:
            query = query.filter(StockPosition.ex_plant_id == ex_plant_id)
        
        rows = query.order_by(ExPlant.plant_name).all()
        return [StockService._to_dict(p, item_name, plant_name) for p, item_name, plant_name in rows]
    
    @staticmethod
    def get_positions_by_plant(db: Session, ex_plant_id: int) -> List[Dict]:
        rows = StockService._position_query(db).filter(
            StockPosition.ex_plant_id == ex_plant_id
        ).order_by(Item.item_name).all()
        return [StockService._to_dict(p, item_name, plant_name) for p, item_name, plant_name in rows]
    
    @staticmethod
    def get_summary(db: Session) -> Dict:
        """Totals across every position"""
        totals = db.query(
            func.sum(StockPosition.total_purchase_packs).label("total_purchase"),
            func.sum(StockPosition.total_sale_packs).label("total_sale"),
            func.sum(StockPosition.total_purchase_packs - StockPosition.total_sale_packs).label("net_purchase"),
            func.sum(StockPosition.pending_purchase_loading).label("pending_purchase_loading"),
            func.sum(StockPosition.pending_sale_loading).label("pending_sale_loading"),
            func.sum(StockPosition.net_position_packs).label("net_position")
        ).one()
        
        return {
            "total_purchase": float(totals.total_purchase or 0),
            "total_sale": float(totals.total_sale or 0),
            "net_purchase": float(totals.net_purchase or 0),
            "pending_purchase_loading": float(totals.pending_purchase_loading or 0),
            "pending_sale_loading": float(totals.pending_sale_loading or 0),
            "net_position": float(totals.net_position or 0),
        }
