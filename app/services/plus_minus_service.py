"""
Plus/Minus Service - cumulative weighted-average-cost P&L snapshots

Every snapshot is a full recompute over all contracts with
trade_date <= snapshot date, never a delta from the previous day:

    avg_buy_rate  = buy_total  / buy_kg  * 10
    avg_sell_rate = sell_total / sell_kg * 10
    profit        = (avg_sell_rate/10 - avg_buy_rate/10) * sell_kg

Both sides are measured in kg for the rate denominators (see units.py).
"""
from sqlalchemy.orm import Session
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set
from zoneinfo import ZoneInfo
import logging

from app.core import settings, advisory_lock
from app.models import TradeContract, TradeType, PlusMinusSnapshot, Item, ExPlant
from .stock_service import plant_filter, sort_keys, PositionKey
from .units import Quantity, Rate, Unit, money

logger = logging.getLogger(__name__)


def pl_figures(rows: Iterable) -> Dict[str, Decimal]:
    """
    Weighted-average P&L over (transaction_type, quantity_packs, rate_per_10kg) rows.
    """
    buy_total = Decimal("0")
    sell_total = Decimal("0")
    buy_qty = Quantity.zero(Unit.PACKS)
    sell_qty = Quantity.zero(Unit.PACKS)
    
    for transaction_type, quantity_packs, rate_per_10kg in rows:
        qty = Quantity.packs(quantity_packs)
        value = Rate.of(rate_per_10kg).value_of(qty)
        if transaction_type == TradeType.PURCHASE.value:
            buy_total += value
            buy_qty = buy_qty + qty
        else:
            sell_total += value
            sell_qty = sell_qty + qty
    
    avg_buy = Rate.average(buy_total, buy_qty)
    avg_sell = Rate.average(sell_total, sell_qty)
    profit = (avg_sell.per_kg() - avg_buy.per_kg()) * sell_qty.to_kg().value
    
    return {
        "buy_total": money(buy_total),
        "sell_total": money(sell_total),
        "buy_quantity_packs": buy_qty.quantized(),
        "buy_quantity_kg": buy_qty.to_kg().quantized(),
        "sell_quantity_packs": sell_qty.quantized(),
        "sell_quantity_kg": sell_qty.to_kg().quantized(),
        "avg_buy_rate": avg_buy.quantized(),
        "avg_sell_rate": avg_sell.quantized(),
        "profit": money(profit),
    }


def today() -> date:
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


class PlusMinusService:
    
    # ===================== GENERATOR =====================
    
    @staticmethod
    def active_keys(db: Session, as_of: date) -> List[PositionKey]:
        """(item, plant) pairs with at least one contract on or before as_of"""
        keys = db.query(TradeContract.item_id, TradeContract.ex_plant_id).filter(
            TradeContract.trade_date <= as_of
        ).distinct().all()
        return sort_keys((k[0], k[1]) for k in keys)
    
    @staticmethod
    def compute_snapshot(db: Session, item_id: int, ex_plant_id: Optional[int], as_of: date) -> Dict[str, Decimal]:
        rows = db.query(
            TradeContract.transaction_type,
            TradeContract.quantity_packs,
            TradeContract.rate_per_10kg
        ).filter(
            TradeContract.item_id == item_id,
            plant_filter(TradeContract.ex_plant_id, ex_plant_id),
            TradeContract.trade_date <= as_of
        ).all()
        return pl_figures(rows)
    
    @staticmethod
    def generate_for_date(db: Session, snapshot_date: date) -> List[PlusMinusSnapshot]:
        """
        Regenerate every snapshot row for one date.

        Rows for pairs that no longer have any contract up to this date
        are removed so the date is a full replacement.
        """
        keys = PlusMinusService.active_keys(db, snapshot_date)
        
        results = []
        for item_id, ex_plant_id in keys:
            advisory_lock(db, "plus_minus", snapshot_date, item_id, ex_plant_id)
            figures = PlusMinusService.compute_snapshot(db, item_id, ex_plant_id, snapshot_date)
            
            # Read under the lock; another writer may have inserted it meanwhile
            row = db.query(PlusMinusSnapshot).filter(
                PlusMinusSnapshot.snapshot_date == snapshot_date,
                PlusMinusSnapshot.item_id == item_id,
                plant_filter(PlusMinusSnapshot.ex_plant_id, ex_plant_id)
            ).first()
            if not row:
                row = PlusMinusSnapshot(snapshot_date=snapshot_date, item_id=item_id, ex_plant_id=ex_plant_id)
                db.add(row)
            for field, value in figures.items():
                setattr(row, field, value)
            results.append(row)
        
        active = set(keys)
        stale = [
            row for row in db.query(PlusMinusSnapshot).filter(PlusMinusSnapshot.snapshot_date == snapshot_date).all()
            if (row.item_id, row.ex_plant_id) not in active
        ]
        for row in stale:
            db.delete(row)
        
        db.flush()
        logger.debug(f"P&L snapshot {snapshot_date}: {len(results)} rows, {len(stale)} stale removed")
        return results
    
    @staticmethod
    def refresh_from(db: Session, from_date: date, force_dates: Iterable[date] = ()) -> List[date]:
        """
        Regenerate force_dates plus every already-materialised date >= from_date.

        Snapshots are cumulative, so a contract change on D invalidates every
        later snapshot too.
        """
        dates: Set[date] = set(force_dates)
        dates.update(
            d for (d,) in db.query(PlusMinusSnapshot.snapshot_date).filter(
                PlusMinusSnapshot.snapshot_date >= from_date
            ).distinct().all()
        )
        for snapshot_date in sorted(dates):
            PlusMinusService.generate_for_date(db, snapshot_date)
        return sorted(dates)
    
    @staticmethod
    def ledger_dates(db: Session) -> List[date]:
        return [d for (d,) in db.query(TradeContract.trade_date).distinct().order_by(TradeContract.trade_date).all()]
    
    @staticmethod
    def prune_orphan_snapshots(db: Session) -> int:
        """Drop snapshot dates that no longer exist in the ledger"""
        dates = PlusMinusService.ledger_dates(db)
        query = db.query(PlusMinusSnapshot)
        if dates:
            query = query.filter(PlusMinusSnapshot.snapshot_date.notin_(dates))
        removed = query.delete(synchronize_session=False)
        db.flush()
        return removed
    
    # ===================== READS =====================
    
    @staticmethod
    def _to_dict(row: PlusMinusSnapshot, item_name: str, plant_name: Optional[str]) -> Dict:
        return {
            "date": row.snapshot_date.isoformat(),
            "item_id": row.item_id,
            "item_name": item_name,
            "ex_plant_id": row.ex_plant_id,
            "ex_plant_name": plant_name,
            "buy_total": float(row.buy_total),
            "sell_total": float(row.sell_total),
            "buy_quantity": float(row.buy_quantity_packs),
            "sell_quantity": float(row.sell_quantity_packs),
            "buy_quantity_kg": float(row.buy_quantity_kg),
            "sell_quantity_kg": float(row.sell_quantity_kg),
            "avg_buy_rate": float(row.avg_buy_rate),
            "avg_sell_rate": float(row.avg_sell_rate),
            "profit": float(row.profit),
        }
    
    @staticmethod
    def _snapshot_query(db: Session):
        return db.query(PlusMinusSnapshot, Item.item_name, ExPlant.plant_name).join(
            Item, PlusMinusSnapshot.item_id == Item.id
        ).outerjoin(
            ExPlant, PlusMinusSnapshot.ex_plant_id == ExPlant.id
        )
    
    @staticmethod
    def get_snapshots(db: Session, snapshot_date: Optional[date] = None, item_id: Optional[int] = None) -> List[Dict]:
        query = PlusMinusService._snapshot_query(db)
        
        if snapshot_date:
            query = query.filter(PlusMinusSnapshot.snapshot_date == snapshot_date)
        if item_id:
            query = query.filter(PlusMinusSnapshot.item_id == item_id)
        
        rows = query.order_by(PlusMinusSnapshot.snapshot_date.desc(), Item.item_name, ExPlant.plant_name).all()
        return [PlusMinusService._to_dict(r, item_name, plant_name) for r, item_name, plant_name in rows]
    
    @staticmethod
    def _totals(rows: List[Dict]) -> Dict:
        return {
            "total_buy": round(sum(r["buy_total"] for r in rows), 2),
            "total_sell": round(sum(r["sell_total"] for r in rows), 2),
            "total_profit": round(sum(r["profit"] for r in rows), 2),
        }
    
    @staticmethod
    def get_summary(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict:
        """
        Latest snapshot per (item, plant) inside the period.

        Snapshots are already cumulative; adding them up across days would
        count the same contracts once per day.
        """
        query = PlusMinusService._snapshot_query(db)
        if start_date:
            query = query.filter(PlusMinusSnapshot.snapshot_date >= start_date)
        if end_date:
            query = query.filter(PlusMinusSnapshot.snapshot_date <= end_date)
        
        latest = {}
        for row, item_name, plant_name in query.order_by(PlusMinusSnapshot.snapshot_date).all():
            latest[(row.item_id, row.ex_plant_id)] = PlusMinusService._to_dict(row, item_name, plant_name)
        
        items = sorted(latest.values(), key=lambda r: (r["item_name"], r["ex_plant_name"] or ""))
        return {
            "period": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
            },
            "item_summary": items,
            "overall_summary": PlusMinusService._totals(items),
        }
    
    @staticmethod
    def get_today(db: Session) -> Dict:
        current = today()
        items = PlusMinusService.get_snapshots(db, snapshot_date=current)
        return {
            "date": current.isoformat(),
            "items": items,
            "totals": PlusMinusService._totals(items),
        }
    
    @staticmethod
    def get_future_pl(db: Session) -> List[Dict]:
        """
        P&L over contracts that still have quantity pending loading.

        Filters by fulfilment status instead of calendar date; a separate
        read path, nothing is persisted.
        """
        rows = db.query(
            TradeContract.item_id,
            TradeContract.ex_plant_id,
            TradeContract.transaction_type,
            TradeContract.quantity_packs,
            TradeContract.rate_per_10kg
        ).filter(
            TradeContract.pending_quantity_packs > 0
        ).all()
        
        grouped: Dict[PositionKey, list] = {}
        for item_id, ex_plant_id, transaction_type, quantity_packs, rate in rows:
            grouped.setdefault((item_id, ex_plant_id), []).append((transaction_type, quantity_packs, rate))
        
        if not grouped:
            return []
        
        item_names = dict(db.query(Item.id, Item.item_name).all())
        plant_names = dict(db.query(ExPlant.id, ExPlant.plant_name).all())
        
        results = []
        for item_id, ex_plant_id in sort_keys(grouped.keys()):
            figures = pl_figures(grouped[(item_id, ex_plant_id)])
            item_name = item_names.get(item_id)
            results.append({
                "item_id": item_id,
                "item_name": item_name,
                "product_type": item_name,
                "ex_plant_id": ex_plant_id,
                "ex_plant_name": plant_names.get(ex_plant_id),
                "buy_total": float(figures["buy_total"]),
                "sell_total": float(figures["sell_total"]),
                "buy_quantity": float(figures["buy_quantity_packs"]),
                "sell_quantity": float(figures["sell_quantity_packs"]),
                "buy_quantity_kg": float(figures["buy_quantity_kg"]),
                "sell_quantity_kg": float(figures["sell_quantity_kg"]),
                "avg_buy_rate": float(figures["avg_buy_rate"]),
                "avg_sell_rate": float(figures["avg_sell_rate"]),
                "profit": float(figures["profit"]),
            })
        return results
