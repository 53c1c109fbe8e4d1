from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db
from app.jobs import RecalcJobRunner, dispatch
from app.models import RecalcJobKind
from app.schemas.recalc_job import RecalcJobResponse
from app.services.stock_service import StockService
from app.services.party_breakdown_service import PartyBreakdownService
from .deps import get_job_runner

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.get("")
def list_stock(
    include_zero: bool = Query(True),
    db: Session = Depends(get_db)
):
    return StockService.get_positions(db, include_zero)


@router.get("/summary")
def stock_summary(db: Session = Depends(get_db)):
    return StockService.get_summary(db)


@router.get("/item/{item_id}")
def stock_by_item(
    item_id: int,
    ex_plant_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    return StockService.get_positions_by_item(db, item_id, ex_plant_id)


@router.get("/ex-plant/{ex_plant_id}")
def stock_by_plant(ex_plant_id: int, db: Session = Depends(get_db)):
    return StockService.get_positions_by_plant(db, ex_plant_id)


@router.get("/party-breakdown")
def all_party_breakdowns(
    pending_only: bool = Query(False),
    db: Session = Depends(get_db)
):
    return PartyBreakdownService.get_all_breakdowns(db, pending_only)


@router.get("/position/{item_id}/party-breakdown")
def position_party_breakdown(
    item_id: int,
    ex_plant_id: Optional[int] = Query(None),
    pending_only: bool = Query(False),
    db: Session = Depends(get_db)
):
    return PartyBreakdownService.get_breakdown(db, item_id, ex_plant_id, pending_only)


@router.get("/verify")
def verify_stock(db: Session = Depends(get_db)):
    """Compare stored positions against a fresh recompute"""
    drift = StockService.verify_positions(db)
    return {"ok": not drift, "drift": drift}


@router.post("/recalculate-all", status_code=202)
def recalculate_all_stock(
    wait: bool = Query(False),
    db: Session = Depends(get_db),
    runner: RecalcJobRunner = Depends(get_job_runner)
):
    job = RecalcJobRunner.create_job(db, RecalcJobKind.STOCK.value)
    dispatch(runner, job.id, wait=wait)
    db.refresh(job)
    return RecalcJobResponse.model_validate(job).model_dump(mode="json")
