#!/usr/bin/env python3
"""
Nightly Scheduler - materialises today's Plus/Minus snapshot
Usage: python scheduler.py [--once]

- Snapshot for today at NIGHTLY_SNAPSHOT_TIME (default 23:30)
- Stock position drift check right after, repairing what it finds
"""

import argparse
import schedule
import time
from datetime import datetime
import logging

from app.core import SessionLocal, settings, unit_of_work
from app.core.logging_config import setup_logging
from app.services.plus_minus_service import PlusMinusService, today
from app.services.recalc_dispatcher import RecalcDispatcher
from app.services.stock_service import StockService

setup_logging("scheduler")
logger = logging.getLogger(__name__)


def generate_today_snapshot():
    """Regenerate today's snapshot rows"""
    snapshot_date = today()
    db = SessionLocal()
    try:
        with unit_of_work(db):
            rows = PlusMinusService.generate_for_date(db, snapshot_date)
        logger.info(f"P&L snapshot {snapshot_date}: {len(rows)} positions")
        return len(rows)
    finally:
        db.close()


def repair_stock_drift():
    """Recompute any stock position that no longer matches the ledgers"""
    db = SessionLocal()
    try:
        drift = StockService.verify_positions(db)
        if not drift:
            logger.info("Stock positions: no drift")
            return 0
        
        for entry in drift:
            logger.warning(f"Stock drift at item={entry['item_id']} plant={entry['ex_plant_id']}: {entry['fields'] or 'missing row'}")
        
        with unit_of_work(db):
            RecalcDispatcher.refresh_positions(db, [(d["item_id"], d["ex_plant_id"]) for d in drift])
        logger.info(f"Stock positions: repaired {len(drift)}")
        return len(drift)
    finally:
        db.close()


def run_nightly():
    """Run all nightly tasks"""
    start_time = datetime.now()
    logger.info("=" * 50)
    logger.info(f"Starting nightly run at {start_time.strftime('%Y-%m-%d %H:%M:%S')}")
    
    try:
        generate_today_snapshot()
    except Exception as e:
        logger.error(f"P&L snapshot failed: {e}")
    
    try:
        repair_stock_drift()
    except Exception as e:
        logger.error(f"Stock drift check failed: {e}")
    
    duration = (datetime.now() - start_time).total_seconds()
    logger.info(f"Nightly run completed in {duration:.1f}s")
    logger.info("=" * 50)


def main():
    parser = argparse.ArgumentParser(description="Nightly snapshot scheduler")
    parser.add_argument("--once", action="store_true", help="Run the nightly tasks now and exit")
    args = parser.parse_args()
    
    if args.once:
        run_nightly()
        return
    
    logger.info(f"{settings.APP_NAME} Scheduler Started")
    logger.info(f"   Log dir: {settings.LOGS_PATH}")
    logger.info(f"   Schedule: daily at {settings.NIGHTLY_SNAPSHOT_TIME} (server local time)")
    
    schedule.every().day.at(settings.NIGHTLY_SNAPSHOT_TIME).do(run_nightly)
    
    while True:
        schedule.run_pending()
        time.sleep(60)  # Check every minute


if __name__ == "__main__":
    main()
