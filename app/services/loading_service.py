"""
Loading Service - Fulfillment Ledger writes and reads
"""
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from datetime import date
import logging

from app.core import unit_of_work
from app.core.exceptions import LedgerValidationError
from app.models import FulfillmentEvent, TradeContract
from app.schemas.loading import LoadingCreate, LoadingUpdate
from .recalc_dispatcher import RecalcDispatcher
from .pending_service import PendingUpdate

logger = logging.getLogger(__name__)


class LoadingService:
    """Fulfillment Ledger business logic"""
    
    @staticmethod
    def get_loadings(
        db: Session,
        sauda_id: Optional[int] = None,
        loading_date: Optional[date] = None
    ) -> List[FulfillmentEvent]:
        query = db.query(FulfillmentEvent)
        
        if sauda_id:
            query = query.filter(FulfillmentEvent.sauda_id == sauda_id)
        if loading_date:
            query = query.filter(FulfillmentEvent.loading_date == loading_date)
        
        return query.order_by(FulfillmentEvent.loading_date.desc(), FulfillmentEvent.id.desc()).all()
    
    @staticmethod
    def get_loading_by_id(db: Session, loading_id: int) -> Optional[FulfillmentEvent]:
        return db.query(FulfillmentEvent).filter(FulfillmentEvent.id == loading_id).first()
    
    @staticmethod
    def _require_contract(db: Session, sauda_id: int) -> TradeContract:
        contract = db.query(TradeContract).filter(TradeContract.id == sauda_id).first()
        if not contract:
            raise LedgerValidationError(f"Sauda {sauda_id} not found")
        return contract
    
    @staticmethod
    def create_loading(db: Session, data: LoadingCreate) -> Tuple[FulfillmentEvent, PendingUpdate]:
        """Record a delivery, then refresh its contract's pending quantity and position"""
        with unit_of_work(db):
            contract = LoadingService._require_contract(db, data.sauda_id)
            
            loading = FulfillmentEvent(**data.model_dump())
            db.add(loading)
            db.flush()
            
            updates = RecalcDispatcher.loadings_written(db, [contract.id])
        
        db.refresh(loading)
        logger.info(f"Loading {loading.id}: {loading.vajan_kg} kg against sauda {contract.sauda_no}")
        return loading, updates[contract.id]
    
    @staticmethod
    def update_loading(db: Session, loading_id: int, data: LoadingUpdate) -> Optional[Tuple[FulfillmentEvent, PendingUpdate]]:
        """A loading may be moved to another sauda; both contracts get refreshed"""
        loading = LoadingService.get_loading_by_id(db, loading_id)
        if not loading:
            return None
        
        changes = data.model_dump(exclude_unset=True)
        for field in ("sauda_id", "loading_date", "vajan_kg"):
            if field in changes and changes[field] is None:
                raise LedgerValidationError(f"{field} cannot be empty")
        
        with unit_of_work(db):
            previous_sauda_id = loading.sauda_id
            if "sauda_id" in changes:
                LoadingService._require_contract(db, changes["sauda_id"])
            
            for field, value in changes.items():
                setattr(loading, field, value)
            db.flush()
            
            updates = RecalcDispatcher.loadings_written(db, [previous_sauda_id, loading.sauda_id])
        
        db.refresh(loading)
        logger.info(f"Updated loading {loading.id}: {sorted(changes)}")
        return loading, updates[loading.sauda_id]
    
    @staticmethod
    def delete_loading(db: Session, loading_id: int) -> Optional[PendingUpdate]:
        loading = LoadingService.get_loading_by_id(db, loading_id)
        if not loading:
            return None
        
        sauda_id = loading.sauda_id
        with unit_of_work(db):
            db.delete(loading)
            db.flush()
            updates = RecalcDispatcher.loadings_written(db, [sauda_id])
        
        logger.info(f"Deleted loading {loading_id} from sauda {sauda_id}")
        return updates.get(sauda_id)
