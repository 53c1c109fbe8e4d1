"""
Recalc Dispatcher - which derived views a ledger write refreshes

    contract created      -> stock(key); P&L dates already materialised >= trade_date
    contract updated      -> pending(contract); stock(old key, new key);
                             P&L(old date, new date, materialised dates >= earliest)
    contract deleted      -> stock(key); P&L dates already materialised >= trade_date
    loading written       -> pending(each owning contract); stock(each owning key)

Callers run inside unit_of_work(); a failing refresh raises
RecalculationError and the whole write rolls back.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, Optional
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import RecalculationError, LedgerError
from app.models import TradeContract
from .pending_service import PendingQuantityService, PendingUpdate
from .stock_service import StockService, sort_keys
from .plus_minus_service import PlusMinusService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractState:
    """The parts of a contract that decide which derived rows it feeds"""
    sauda_id: int
    item_id: int
    ex_plant_id: Optional[int]
    trade_date: date

    @classmethod
    def of(cls, contract: TradeContract) -> "ContractState":
        return cls(contract.id, contract.item_id, contract.ex_plant_id, contract.trade_date)

    @property
    def position_key(self):
        return (self.item_id, self.ex_plant_id)


def _run(view: str, key, fn: Callable, *args):
    try:
        return fn(*args)
    except LedgerError:
        raise
    except Exception as e:
        logger.error(f"Recalculation of {view} for {key} failed: {e}")
        raise RecalculationError(view, key, e) from e


class RecalcDispatcher:

    @staticmethod
    def refresh_positions(db: Session, keys: Iterable) -> None:
        for item_id, ex_plant_id in sort_keys(keys):
            _run("stock", (item_id, ex_plant_id), StockService.recalculate, db, item_id, ex_plant_id)

    @staticmethod
    def refresh_plus_minus(db: Session, from_date: date, force_dates: Iterable[date] = ()) -> None:
        _run("plus_minus", from_date, PlusMinusService.refresh_from, db, from_date, list(force_dates))

    @staticmethod
    def contract_created(db: Session, contract: TradeContract) -> None:
        state = ContractState.of(contract)
        RecalcDispatcher.refresh_positions(db, [state.position_key])
        RecalcDispatcher.refresh_plus_minus(db, state.trade_date)

    @staticmethod
    def contract_updated(db: Session, before: ContractState, contract: TradeContract) -> Optional[PendingUpdate]:
        after = ContractState.of(contract)
        pending = _run("pending", after.sauda_id, PendingQuantityService.update_pending, db, after.sauda_id)
        RecalcDispatcher.refresh_positions(db, {before.position_key, after.position_key})
        RecalcDispatcher.refresh_plus_minus(
            db,
            min(before.trade_date, after.trade_date),
            force_dates={before.trade_date, after.trade_date}
        )
        return pending

    @staticmethod
    def contract_deleted(db: Session, before: ContractState) -> None:
        RecalcDispatcher.refresh_positions(db, [before.position_key])
        RecalcDispatcher.refresh_plus_minus(db, before.trade_date)

    @staticmethod
    def loadings_written(db: Session, sauda_ids: Iterable[int]) -> Dict[int, PendingUpdate]:
        updates = {}
        keys = set()
        for sauda_id in sorted(set(sauda_ids)):
            update = _run("pending", sauda_id, PendingQuantityService.update_pending, db, sauda_id)
            if update is None:
                continue
            updates[sauda_id] = update
            contract = db.query(TradeContract).filter(TradeContract.id == sauda_id).first()
            keys.add(contract.position_key)

        RecalcDispatcher.refresh_positions(db, keys)
        return updates
