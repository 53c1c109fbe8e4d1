from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.core import get_db, unit_of_work
from app.jobs import RecalcJobRunner, dispatch
from app.models import RecalcJobKind
from app.schemas.plus_minus import GenerateRequest
from app.schemas.recalc_job import RecalcJobResponse
from app.services.plus_minus_service import PlusMinusService
from .deps import get_job_runner

router = APIRouter(prefix="/plusminus", tags=["Plus Minus"])


@router.get("")
def list_plus_minus(
    date: Optional[date] = Query(None),
    item_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    return PlusMinusService.get_snapshots(db, date, item_id)


@router.post("/generate")
def generate_plus_minus(data: GenerateRequest, db: Session = Depends(get_db)):
    with unit_of_work(db):
        rows = PlusMinusService.generate_for_date(db, data.date)
    return {
        "date": data.date.isoformat(),
        "generated": len(rows),
        "items": PlusMinusService.get_snapshots(db, data.date),
    }


@router.get("/summary")
def plus_minus_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    return PlusMinusService.get_summary(db, start_date, end_date)


@router.get("/today")
def plus_minus_today(db: Session = Depends(get_db)):
    return PlusMinusService.get_today(db)


@router.get("/future")
def future_plus_minus(db: Session = Depends(get_db)):
    """Projected P&L over contracts not yet fully loaded"""
    return PlusMinusService.get_future_pl(db)


@router.post("/recalculate-all", status_code=202)
def recalculate_all_plus_minus(
    wait: bool = Query(False),
    db: Session = Depends(get_db),
    runner: RecalcJobRunner = Depends(get_job_runner)
):
    job = RecalcJobRunner.create_job(db, RecalcJobKind.PLUS_MINUS.value)
    dispatch(runner, job.id, wait=wait)
    db.refresh(job)
    return RecalcJobResponse.model_validate(job).model_dump(mode="json")
