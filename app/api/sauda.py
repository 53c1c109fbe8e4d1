from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.core import get_db
from app.schemas.sauda import SaudaCreate, SaudaUpdate, SaudaResponse
from app.services.sauda_service import SaudaService

router = APIRouter(prefix="/sauda", tags=["Sauda"])


def _to_dict(contract) -> dict:
    data = SaudaResponse.model_validate(contract).model_dump(mode="json")
    data["party_name"] = contract.party.party_name if contract.party else None
    data["item_name"] = contract.item.item_name if contract.item else None
    data["ex_plant_name"] = contract.ex_plant.plant_name if contract.ex_plant else None
    data["broker_name"] = contract.broker.broker_name if contract.broker else None
    return data


@router.get("")
def list_sauda(
    transaction_type: Optional[str] = Query(None),
    item_id: Optional[int] = Query(None),
    party_id: Optional[int] = Query(None),
    date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    contracts = SaudaService.get_contracts(db, transaction_type, item_id, party_id, date)
    return [_to_dict(c) for c in contracts]


@router.get("/pending")
def list_pending_sauda(
    transaction_type: Optional[str] = Query(None),
    item_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """Contracts with quantity still to be loaded"""
    return [_to_dict(c) for c in SaudaService.get_pending_contracts(db, transaction_type, item_id)]


@router.get("/next-number")
def next_sauda_number(
    trade_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    return {"sauda_no": SaudaService.next_sauda_no(db, trade_date)}


@router.get("/{sauda_id}")
def get_sauda(sauda_id: int, db: Session = Depends(get_db)):
    contract = SaudaService.get_contract_by_id(db, sauda_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Sauda not found")
    return _to_dict(contract)


@router.post("", status_code=201)
def create_sauda(data: SaudaCreate, db: Session = Depends(get_db)):
    contract = SaudaService.create_contract(db, data)
    return _to_dict(contract)


@router.put("/{sauda_id}")
def update_sauda(sauda_id: int, data: SaudaUpdate, db: Session = Depends(get_db)):
    contract = SaudaService.update_contract(db, sauda_id, data)
    if not contract:
        raise HTTPException(status_code=404, detail="Sauda not found")
    return _to_dict(contract)


@router.delete("/{sauda_id}")
def delete_sauda(sauda_id: int, db: Session = Depends(get_db)):
    if not SaudaService.delete_contract(db, sauda_id):
        raise HTTPException(status_code=404, detail="Sauda not found")
    return {"message": "Sauda deleted successfully"}
