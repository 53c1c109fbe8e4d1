"""
Stock Data Verification Script
Compares stored stock positions with a fresh recompute from the ledgers
Usage: python scripts/verify_stock_data.py
"""
import sys
import os
sys.path.append(os.getcwd())
from datetime import datetime

from app.core import SessionLocal
from app.models import PlusMinusSnapshot
from app.services.stock_service import StockService
from app.services.plus_minus_service import PlusMinusService
from sqlalchemy import func

db = SessionLocal()

print('=' * 70)
print('STOCK DATA VERIFICATION REPORT')
print(f'Generated: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}')
print('=' * 70)

# 1. Position drift
print('\n[1] STOCK POSITION DRIFT')
print('-' * 50)
drift = StockService.verify_positions(db)
if not drift:
    print('  All positions match the ledgers')
for entry in drift:
    where = f'item={entry["item_id"]} plant={entry["ex_plant_id"]}'
    if entry['missing']:
        print(f'  {where}: position row missing')
        continue
    for field, values in entry['fields'].items():
        print(f'  {where}: {field:<25} stored={values["stored"]:>12} expected={values["expected"]:>12}')

# 2. Current summary
print('\n[2] STOCK SUMMARY')
print('-' * 50)
for key, value in StockService.get_summary(db).items():
    print(f'  {key:<28}: {value:>12}')

# 3. Snapshot coverage
print('\n[3] PLUS/MINUS SNAPSHOT COVERAGE')
print('-' * 50)
ledger_dates = set(PlusMinusService.ledger_dates(db))
snapshot_dates = {d for (d,) in db.query(PlusMinusSnapshot.snapshot_date).distinct().all()}
print(f'  Ledger trade dates   : {len(ledger_dates)}')
print(f'  Snapshot dates       : {len(snapshot_dates)}')
print(f'  Missing snapshots    : {len(ledger_dates - snapshot_dates)}')
print(f'  Orphan snapshot dates: {len(snapshot_dates - ledger_dates)}')
latest = db.query(func.max(PlusMinusSnapshot.snapshot_date)).scalar()
print(f'  Latest snapshot      : {latest or "-"}')

print('\n' + '=' * 70)
print('FAIL' if drift else 'OK')

db.close()
sys.exit(1 if drift else 0)
