from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core import get_db
from app.jobs import RecalcJobRunner, dispatch
from app.schemas.recalc_job import RecalcJobResponse
from .deps import get_job_runner

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def _to_dict(job) -> dict:
    return RecalcJobResponse.model_validate(job).model_dump(mode="json")


@router.get("")
def list_jobs(limit: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    return [_to_dict(j) for j in RecalcJobRunner.list_jobs(db, limit)]


@router.get("/{job_id}")
def get_job(job_id: int, db: Session = Depends(get_db)):
    return _to_dict(RecalcJobRunner.get_job(db, job_id))


@router.post("/{job_id}/cancel")
def cancel_job(job_id: int, db: Session = Depends(get_db)):
    return _to_dict(RecalcJobRunner.request_cancel(db, job_id))


@router.post("/{job_id}/resume", status_code=202)
def resume_job(
    job_id: int,
    wait: bool = Query(False),
    db: Session = Depends(get_db),
    runner: RecalcJobRunner = Depends(get_job_runner)
):
    job = RecalcJobRunner.prepare_resume(db, job_id)
    dispatch(runner, job.id, wait=wait)
    db.refresh(job)
    return _to_dict(job)
