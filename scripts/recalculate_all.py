"""
Recalculate-all backfill from the command line.

Usage:
    python scripts/recalculate_all.py stock
    python scripts/recalculate_all.py plus_minus
    python scripts/recalculate_all.py --resume 12
"""
import sys
import os
import argparse
import logging
sys.path.append(os.getcwd())

from app.core import SessionLocal, engine, Base
from app.core.logging_config import setup_logging
from app.jobs import RecalcJobRunner
from app.models import RecalcJobKind

setup_logging("recalculate_all")
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Rebuild derived views from the ledgers")
    parser.add_argument("kind", nargs="?", choices=[k.value for k in RecalcJobKind])
    parser.add_argument("--resume", type=int, metavar="JOB_ID", help="Resume a cancelled or failed job")
    args = parser.parse_args()
    
    if not args.kind and args.resume is None:
        parser.error("either kind or --resume is required")
    
    Base.metadata.create_all(bind=engine)
    runner = RecalcJobRunner()
    db = SessionLocal()
    try:
        if args.resume is not None:
            job = RecalcJobRunner.prepare_resume(db, args.resume)
        else:
            job = RecalcJobRunner.create_job(db, args.kind)
        job_id = job.id
    finally:
        db.close()
    
    runner.run(job_id)
    
    db = SessionLocal()
    try:
        job = RecalcJobRunner.get_job(db, job_id)
        print(f"Job {job.id} ({job.kind}): {job.status}")
        print(f"  processed={job.processed}/{job.total} failed={job.failed}")
        for error in job.errors or []:
            print(f"  ! {error}")
        return 0 if job.status == "SUCCESS" else 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
