"""
Recalculation Jobs - recalculate-all backfills, run off the request path

Each unit (one (item, plant) position, or one P&L date) commits on its own,
so a failing unit is recorded and skipped instead of aborting the run.
Cancellation is honoured between units and a cancelled or failed job can be
resumed; units already rebuilt are skipped.
"""
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session, sessionmaker

from app.core import SessionLocal, unit_of_work
from app.core.exceptions import JobNotFound, JobStateError, LedgerValidationError
from app.models import RecalcJob, RecalcJobKind, RecalcJobStatus
from app.services.stock_service import StockService
from app.services.plus_minus_service import PlusMinusService

logger = logging.getLogger(__name__)

MAX_RECORDED_ERRORS = 200

# Global scheduler instance
_scheduler = None

Unit = Tuple[str, Callable[[Session], object]]


def _stock_units(db: Session) -> List[Unit]:
    units = []
    for item_id, ex_plant_id in StockService.position_keys(db):
        units.append((
            f"{item_id}:{ex_plant_id}",
            lambda s, i=item_id, p=ex_plant_id: StockService.recalculate(s, i, p)
        ))
    return units


def _plus_minus_units(db: Session) -> List[Unit]:
    return [
        (d.isoformat(), lambda s, d=d: PlusMinusService.generate_for_date(s, d))
        for d in PlusMinusService.ledger_dates(db)
    ]


UNIT_BUILDERS = {
    RecalcJobKind.STOCK.value: _stock_units,
    RecalcJobKind.PLUS_MINUS.value: _plus_minus_units,
}

FINALIZERS = {
    RecalcJobKind.PLUS_MINUS.value: PlusMinusService.prune_orphan_snapshots,
}


class RecalcJobRunner:
    """Creates, runs, cancels and resumes RecalcJob rows"""
    
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
    
    # ---------- job rows ----------
    
    @staticmethod
    def get_job(db: Session, job_id: int) -> RecalcJob:
        job = db.query(RecalcJob).filter(RecalcJob.id == job_id).first()
        if not job:
            raise JobNotFound(job_id)
        return job
    
    @staticmethod
    def list_jobs(db: Session, limit: int = 20) -> List[RecalcJob]:
        return db.query(RecalcJob).order_by(RecalcJob.id.desc()).limit(limit).all()
    
    @staticmethod
    def create_job(db: Session, kind: str) -> RecalcJob:
        if kind not in UNIT_BUILDERS:
            raise LedgerValidationError(f"Unknown recalculation kind: {kind}")
        job = RecalcJob(kind=kind, status=RecalcJobStatus.PENDING.value, errors=[])
        db.add(job)
        db.commit()
        db.refresh(job)
        logger.info(f"Queued recalc job {job.id} ({kind})")
        return job
    
    @staticmethod
    def request_cancel(db: Session, job_id: int) -> RecalcJob:
        job = RecalcJobRunner.get_job(db, job_id)
        if job.status not in (RecalcJobStatus.PENDING.value, RecalcJobStatus.RUNNING.value):
            raise JobStateError(f"Job {job_id} is {job.status}; only pending or running jobs can be cancelled")
        job.cancel_requested = True
        db.commit()
        db.refresh(job)
        logger.info(f"Cancel requested for recalc job {job_id}")
        return job
    
    @staticmethod
    def prepare_resume(db: Session, job_id: int) -> RecalcJob:
        job = RecalcJobRunner.get_job(db, job_id)
        if job.status not in (RecalcJobStatus.CANCELLED.value, RecalcJobStatus.FAILED.value):
            raise JobStateError(f"Job {job_id} is {job.status}; only cancelled or failed jobs can be resumed")
        # Failed units are not in done_units and get retried
        job.status = RecalcJobStatus.PENDING.value
        job.cancel_requested = False
        job.failed = 0
        job.errors = []
        job.error_message = None
        job.completed_at = None
        db.commit()
        db.refresh(job)
        logger.info(f"Resuming recalc job {job_id} after {len(job.done_units or [])} completed units")
        return job
    
    # ---------- execution ----------
    
    def run(self, job_id: int) -> None:
        """Process the job's outstanding units. Safe to call from a worker thread."""
        db = self.session_factory()
        try:
            self._run(db, job_id)
        finally:
            db.close()
    
    def _cancel_requested(self, db: Session, job_id: int) -> bool:
        return bool(db.query(RecalcJob.cancel_requested).filter(RecalcJob.id == job_id).scalar())
    
    def _run(self, db: Session, job_id: int) -> None:
        job = self.get_job(db, job_id)
        if job.status != RecalcJobStatus.PENDING.value:
            logger.warning(f"Recalc job {job_id} is {job.status}; not starting")
            return
        
        job.status = RecalcJobStatus.RUNNING.value
        job.started_at = job.started_at or datetime.utcnow()
        db.commit()
        
        try:
            # Rebuilt from the current ledger on every start; a resume skips
            # what is already done instead of trusting positions in an old list
            units = UNIT_BUILDERS[job.kind](db)
            db.rollback()  # end the read transaction used to enumerate
            done = set(job.done_units or [])
            remaining = [(label, process) for label, process in units if label not in done]
            job.total = len(units)
            job.processed = len(units) - len(remaining)
            db.commit()
            
            for label, process in remaining:
                if self._cancel_requested(db, job_id):
                    job.status = RecalcJobStatus.CANCELLED.value
                    job.completed_at = datetime.utcnow()
                    db.commit()
                    logger.info(f"Recalc job {job_id} cancelled after {job.cursor} ({job.processed}/{job.total})")
                    return
                
                try:
                    with unit_of_work(db):
                        process(db)
                    job.processed += 1
                    done.add(label)
                    job.done_units = sorted(done)
                except Exception as e:
                    logger.exception(f"Recalc job {job_id}: unit {label} failed")
                    job.failed += 1
                    if len(job.errors or []) < MAX_RECORDED_ERRORS:
                        job.errors = list(job.errors or []) + [{"unit": label, "error": str(e)[:500]}]
                
                job.cursor = label
                db.commit()
            
            finalize = FINALIZERS.get(job.kind)
            if finalize:
                with unit_of_work(db):
                    removed = finalize(db)
                logger.info(f"Recalc job {job_id}: pruned {removed} orphan rows")
            
            job.status = RecalcJobStatus.PARTIAL.value if job.failed else RecalcJobStatus.SUCCESS.value
            job.completed_at = datetime.utcnow()
            db.commit()
            logger.info(
                f"Recalc job {job_id} ({job.kind}) {job.status}: "
                f"{job.processed} processed, {job.failed} failed of {job.total}"
            )
        except Exception as e:
            db.rollback()
            logger.exception(f"Recalc job {job_id} aborted")
            job.status = RecalcJobStatus.FAILED.value
            job.error_message = str(e)[:500]
            job.completed_at = datetime.utcnow()
            db.commit()


class RecalcScheduler:
    """
    Runs queued recalc jobs on a background thread
    """
    
    def __init__(self, runner: RecalcJobRunner):
        from apscheduler.schedulers.background import BackgroundScheduler
        self.scheduler = BackgroundScheduler()
        self.runner = runner
        self.is_running = False
    
    def start(self):
        if not self.is_running:
            self.scheduler.start()
            self.is_running = True
            logger.info("Recalc scheduler started")
    
    def stop(self):
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Recalc scheduler stopped")
    
    def submit(self, job_id: int) -> None:
        self.scheduler.add_job(
            func=self.runner.run,
            trigger='date',
            run_date=datetime.now(),
            args=[job_id],
            id=f'recalc_job_{job_id}',
            name=f'Recalc job {job_id}',
            replace_existing=True
        )


def get_scheduler() -> Optional[RecalcScheduler]:
    return _scheduler


def start_scheduler(runner: Optional[RecalcJobRunner] = None) -> RecalcScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = RecalcScheduler(runner or RecalcJobRunner())
    _scheduler.start()
    return _scheduler


def stop_scheduler():
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None


def dispatch(runner: RecalcJobRunner, job_id: int, wait: bool = False) -> None:
    """Hand the job to the background scheduler, or run it here when asked or when none is running"""
    scheduler = get_scheduler()
    if wait or scheduler is None or not scheduler.is_running:
        if not wait:
            logger.warning(f"Recalc scheduler not running; running job {job_id} inline")
        runner.run(job_id)
        return
    scheduler.submit(job_id)
