"""
Sauda Service - Trade Ledger writes and reads
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from datetime import date
from decimal import Decimal
import logging

from app.core import settings, unit_of_work
from app.core.exceptions import LedgerValidationError, DuplicateContractNumber, ContractHasFulfillments
from app.models import TradeContract, FulfillmentEvent, Item, ExPlant, Party, Broker, AuditLog
from app.schemas.sauda import SaudaCreate, SaudaUpdate
from .recalc_dispatcher import RecalcDispatcher, ContractState
from .plus_minus_service import today

logger = logging.getLogger(__name__)

AUDITED_FIELDS = [
    "sauda_no", "transaction_type", "trade_date", "party_id", "item_id", "ex_plant_id",
    "broker_id", "quantity_packs", "rate_per_10kg", "pending_quantity_packs",
    "delivery_condition", "payment_condition", "loading_due_date", "remarks",
]


def financial_year_prefix(on: date) -> str:
    """April 2024 - March 2025 -> '202425'"""
    start_year = on.year if on.month >= settings.FINANCIAL_YEAR_START_MONTH else on.year - 1
    return f"{start_year}{str(start_year + 1)[-2:]}"


def _audit_value(value):
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _snapshot(contract: TradeContract) -> dict:
    return {field: _audit_value(getattr(contract, field)) for field in AUDITED_FIELDS}


class SaudaService:
    """Trade Ledger business logic"""
    
    @staticmethod
    def next_sauda_no(db: Session, trade_date: Optional[date] = None) -> str:
        """Next sequential number within the financial year of trade_date"""
        prefix = financial_year_prefix(trade_date or today())
        existing = db.query(TradeContract.sauda_no).filter(
            TradeContract.sauda_no.like(f"{prefix}/%")
        ).all()
        
        last_number = 0
        for (sauda_no,) in existing:
            suffix = sauda_no.split("/", 1)[1]
            if suffix.isdigit():
                last_number = max(last_number, int(suffix))
        
        return f"{prefix}/{last_number + 1:04d}"
    
    @staticmethod
    def get_contracts(
        db: Session,
        transaction_type: Optional[str] = None,
        item_id: Optional[int] = None,
        party_id: Optional[int] = None,
        trade_date: Optional[date] = None
    ) -> List[TradeContract]:
        query = db.query(TradeContract)
        
        if transaction_type:
            query = query.filter(TradeContract.transaction_type == transaction_type)
        if item_id:
            query = query.filter(TradeContract.item_id == item_id)
        if party_id:
            query = query.filter(TradeContract.party_id == party_id)
        if trade_date:
            query = query.filter(TradeContract.trade_date == trade_date)
        
        return query.order_by(TradeContract.trade_date.desc(), TradeContract.id.desc()).all()
    
    @staticmethod
    def get_contract_by_id(db: Session, sauda_id: int) -> Optional[TradeContract]:
        return db.query(TradeContract).filter(TradeContract.id == sauda_id).first()
    
    @staticmethod
    def get_pending_contracts(
        db: Session,
        transaction_type: Optional[str] = None,
        item_id: Optional[int] = None
    ) -> List[TradeContract]:
        """Contracts with quantity still to be loaded, oldest first"""
        query = db.query(TradeContract).filter(TradeContract.pending_quantity_packs > 0)
        
        if transaction_type:
            query = query.filter(TradeContract.transaction_type == transaction_type)
        if item_id:
            query = query.filter(TradeContract.item_id == item_id)
        
        return query.order_by(TradeContract.trade_date.asc(), TradeContract.id.asc()).all()
    
    @staticmethod
    def _validate_references(db: Session, values: dict) -> None:
        checks = [
            ("party_id", Party, "Party"),
            ("item_id", Item, "Item"),
            ("ex_plant_id", ExPlant, "Ex plant"),
            ("broker_id", Broker, "Broker"),
        ]
        for field, model, label in checks:
            ref_id = values.get(field)
            if ref_id is None:
                continue
            if not db.query(model.id).filter(model.id == ref_id).first():
                raise LedgerValidationError(f"{label} {ref_id} not found")
    
    @staticmethod
    def _check_unique_no(db: Session, sauda_no: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(TradeContract.id).filter(TradeContract.sauda_no == sauda_no)
        if exclude_id is not None:
            query = query.filter(TradeContract.id != exclude_id)
        if query.first():
            raise DuplicateContractNumber(sauda_no)
    
    @staticmethod
    def _flush(db: Session, sauda_no: str) -> None:
        try:
            db.flush()
        except IntegrityError as e:
            # Lost a race on the unique sauda_no
            if "sauda_no" in str(e.orig):
                raise DuplicateContractNumber(sauda_no) from e
            raise
    
    @staticmethod
    def create_contract(db: Session, data: SaudaCreate) -> TradeContract:
        """Record a contract and refresh the position it feeds"""
        values = data.model_dump()
        values["transaction_type"] = data.transaction_type.value
        
        with unit_of_work(db):
            SaudaService._validate_references(db, values)
            
            if not values.get("sauda_no"):
                values["sauda_no"] = SaudaService.next_sauda_no(db, data.trade_date)
            SaudaService._check_unique_no(db, values["sauda_no"])
            
            contract = TradeContract(**values, pending_quantity_packs=data.quantity_packs)
            db.add(contract)
            SaudaService._flush(db, values["sauda_no"])
            
            RecalcDispatcher.contract_created(db, contract)
        
        db.refresh(contract)
        logger.info(
            f"Created sauda {contract.sauda_no}: {contract.transaction_type} "
            f"{contract.quantity_packs} packs @ {contract.rate_per_10kg}"
        )
        return contract
    
    @staticmethod
    def update_contract(db: Session, sauda_id: int, data: SaudaUpdate) -> Optional[TradeContract]:
        """
        Partial update. Both the old and the new (item, plant) position and
        P&L date are refreshed, since any of them may have moved.
        """
        contract = SaudaService.get_contract_by_id(db, sauda_id)
        if not contract:
            return None
        
        changes = data.model_dump(exclude_unset=True)
        if changes.get("transaction_type") is not None:
            changes["transaction_type"] = data.transaction_type.value
        
        required = ["sauda_no", "transaction_type", "trade_date", "party_id", "item_id", "quantity_packs", "rate_per_10kg"]
        for field in required:
            if field in changes and changes[field] is None:
                raise LedgerValidationError(f"{field} cannot be empty")
        
        with unit_of_work(db):
            SaudaService._validate_references(db, changes)
            if "sauda_no" in changes:
                SaudaService._check_unique_no(db, changes["sauda_no"], exclude_id=sauda_id)
            
            before = ContractState.of(contract)
            before_data = _snapshot(contract)
            
            for field, value in changes.items():
                setattr(contract, field, value)
            SaudaService._flush(db, contract.sauda_no)
            
            RecalcDispatcher.contract_updated(db, before, contract)
            
            db.add(AuditLog(
                table_name=TradeContract.__tablename__,
                record_id=str(sauda_id),
                action="UPDATE",
                before_data=before_data,
                after_data=_snapshot(contract)
            ))
        
        db.refresh(contract)
        logger.info(f"Updated sauda {contract.sauda_no}: {sorted(changes)}")
        return contract
    
    @staticmethod
    def delete_contract(db: Session, sauda_id: int) -> bool:
        """Delete a contract that has no loadings"""
        contract = SaudaService.get_contract_by_id(db, sauda_id)
        if not contract:
            return False
        
        loading_count = db.query(FulfillmentEvent).filter(FulfillmentEvent.sauda_id == sauda_id).count()
        if loading_count:
            raise ContractHasFulfillments(sauda_id, loading_count)
        
        sauda_no = contract.sauda_no
        with unit_of_work(db):
            before = ContractState.of(contract)
            db.add(AuditLog(
                table_name=TradeContract.__tablename__,
                record_id=str(sauda_id),
                action="DELETE",
                before_data=_snapshot(contract),
                after_data=None
            ))
            db.delete(contract)
            db.flush()
            
            RecalcDispatcher.contract_deleted(db, before)
        
        logger.info(f"Deleted sauda {sauda_no}")
        return True
