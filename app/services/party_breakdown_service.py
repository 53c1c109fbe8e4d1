"""
Party Breakdown Service - per-counterparty view of a stock position (read-only)
"""
from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Dict, List, Optional

from app.models import TradeContract, TradeType, FulfillmentEvent, Party, StockPosition, Item, ExPlant
from .stock_service import plant_filter
from .units import Quantity, Rate, Unit, money


SIDES = {TradeType.PURCHASE.value: "buy", TradeType.SALE.value: "sell"}


def _empty_side() -> Dict:
    return {
        "packs": Quantity.zero(Unit.PACKS),
        "value": Decimal("0"),
        "loaded": Quantity.zero(Unit.KG),
        "loaded_value": Decimal("0"),
    }


class PartyBreakdownService:
    
    @staticmethod
    def get_breakdown(db: Session, item_id: int, ex_plant_id: Optional[int], pending_only: bool = False) -> List[Dict]:
        """
        Purchase and sale aggregates grouped by party name, outer-joined.

        Contracts and loadings are aggregated in two separate passes; joining
        loadings onto contracts first would repeat a contract's quantity once
        per loading.
        """
        contract_rows = db.query(
            Party.party_name,
            TradeContract.transaction_type,
            TradeContract.quantity_packs,
            TradeContract.rate_per_10kg
        ).join(
            Party, TradeContract.party_id == Party.id
        ).filter(
            TradeContract.item_id == item_id,
            plant_filter(TradeContract.ex_plant_id, ex_plant_id)
        ).all()
        
        loading_rows = db.query(
            Party.party_name,
            TradeContract.transaction_type,
            FulfillmentEvent.vajan_kg,
            TradeContract.rate_per_10kg
        ).join(
            TradeContract, FulfillmentEvent.sauda_id == TradeContract.id
        ).join(
            Party, TradeContract.party_id == Party.id
        ).filter(
            TradeContract.item_id == item_id,
            plant_filter(TradeContract.ex_plant_id, ex_plant_id)
        ).all()
        
        parties: Dict[str, Dict[str, Dict]] = {}
        
        def side(party_name: str, transaction_type: str) -> Dict:
            entry = parties.setdefault(party_name, {"buy": _empty_side(), "sell": _empty_side()})
            return entry[SIDES[transaction_type]]
        
        for party_name, transaction_type, quantity_packs, rate in contract_rows:
            qty = Quantity.packs(quantity_packs)
            s = side(party_name, transaction_type)
            s["packs"] = s["packs"] + qty
            s["value"] += Rate.of(rate).value_of(qty)
        
        for party_name, transaction_type, vajan_kg, rate in loading_rows:
            weight = Quantity.kg(vajan_kg)
            s = side(party_name, transaction_type)
            s["loaded"] = s["loaded"] + weight
            s["loaded_value"] += Rate.of(rate).value_of(weight)
        
        results = []
        for party_name in sorted(parties):
            buy = parties[party_name]["buy"]
            sell = parties[party_name]["sell"]
            
            pending_buy = buy["packs"] - buy["loaded"].to_packs()
            pending_sell = sell["packs"] - sell["loaded"].to_packs()
            
            row = {
                "party_name": party_name,
                "buy_packs": float(buy["packs"].quantized()),
                "buy_value": float(money(buy["value"])),
                "buy_loaded_packs": float(buy["loaded"].to_packs().quantized()),
                "buy_loaded_value": float(money(buy["loaded_value"])),
                "avg_buy_rate": float(Rate.average(buy["value"], buy["packs"]).quantized()),
                "sell_packs": float(sell["packs"].quantized()),
                "sell_value": float(money(sell["value"])),
                "sell_loaded_packs": float(sell["loaded"].to_packs().quantized()),
                "sell_loaded_value": float(money(sell["loaded_value"])),
                "avg_sell_rate": float(Rate.average(sell["value"], sell["packs"]).quantized()),
                "pending_buy_packs": float(pending_buy.quantized()),
                "pending_sell_packs": float(pending_sell.quantized()),
                "net_packs": float((pending_buy - pending_sell).quantized()),
            }
            
            if pending_only and row["pending_buy_packs"] <= 0 and row["pending_sell_packs"] <= 0:
                continue
            results.append(row)
        
        return results
    
    @staticmethod
    def get_all_breakdowns(db: Session, pending_only: bool = False) -> List[Dict]:
        """Breakdown for every stored position"""
        positions = db.query(StockPosition, Item.item_name, ExPlant.plant_name).join(
            Item, StockPosition.item_id == Item.id
        ).outerjoin(
            ExPlant, StockPosition.ex_plant_id == ExPlant.id
        ).order_by(Item.item_name, ExPlant.plant_name).all()
        
        results = []
        for position, item_name, plant_name in positions:
            parties = PartyBreakdownService.get_breakdown(db, position.item_id, position.ex_plant_id, pending_only)
            if pending_only and not parties:
                continue
            results.append({
                "item_id": position.item_id,
                "item_name": item_name,
                "ex_plant_id": position.ex_plant_id,
                "ex_plant_name": plant_name,
                "parties": parties,
            })
        return results
