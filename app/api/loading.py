from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.core import get_db
from app.schemas.loading import LoadingCreate, LoadingUpdate, LoadingResponse
from app.services.loading_service import LoadingService

router = APIRouter(prefix="/loading", tags=["Loading"])


def _to_dict(loading, pending=None) -> dict:
    data = LoadingResponse.model_validate(loading).model_dump(mode="json")
    contract = loading.contract
    if contract:
        data["sauda_no"] = contract.sauda_no
        data["transaction_type"] = contract.transaction_type
        data["party_name"] = contract.party.party_name if contract.party else None
        data["item_name"] = contract.item.item_name if contract.item else None
        data["ex_plant_name"] = contract.ex_plant.plant_name if contract.ex_plant else None
    if pending is not None:
        data["pending_quantity_packs"] = pending.pending_quantity_packs
        data["over_delivered_kg"] = float(pending.over_delivered_kg)
    return data


@router.get("")
def list_loading(
    sauda_id: Optional[int] = Query(None),
    date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    return [_to_dict(l) for l in LoadingService.get_loadings(db, sauda_id, date)]


@router.get("/{loading_id}")
def get_loading(loading_id: int, db: Session = Depends(get_db)):
    loading = LoadingService.get_loading_by_id(db, loading_id)
    if not loading:
        raise HTTPException(status_code=404, detail="Loading entry not found")
    return _to_dict(loading)


@router.post("", status_code=201)
def create_loading(data: LoadingCreate, db: Session = Depends(get_db)):
    loading, pending = LoadingService.create_loading(db, data)
    return _to_dict(loading, pending)


@router.put("/{loading_id}")
def update_loading(loading_id: int, data: LoadingUpdate, db: Session = Depends(get_db)):
    result = LoadingService.update_loading(db, loading_id, data)
    if not result:
        raise HTTPException(status_code=404, detail="Loading entry not found")
    loading, pending = result
    return _to_dict(loading, pending)


@router.delete("/{loading_id}")
def delete_loading(loading_id: int, db: Session = Depends(get_db)):
    loading = LoadingService.get_loading_by_id(db, loading_id)
    if not loading:
        raise HTTPException(status_code=404, detail="Loading entry not found")
    pending = LoadingService.delete_loading(db, loading_id)
    return {
        "message": "Loading entry deleted successfully",
        "pending_quantity_packs": pending.pending_quantity_packs if pending else None,
    }
