from datetime import date

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

import app.services.plus_minus_service as plus_minus_module
from app.models import PlusMinusSnapshot
from app.services import PlusMinusService, SaudaService, StockService
from app.schemas import SaudaUpdate


def _snapshot(db, snapshot_date, item_id, ex_plant_id):
    rows = [
        r for r in PlusMinusService.get_snapshots(db, snapshot_date, item_id)
        if r["ex_plant_id"] == ex_plant_id
    ]
    assert len(rows) == 1
    return rows[0]


def test_weighted_average_buy_rate(db, masters, make_contract):
    make_contract("purchase", quantity_packs=10, rate=100, trade_date=date(2024, 1, 1))
    make_contract("purchase", quantity_packs=10, rate=200, trade_date=date(2024, 1, 1))

    PlusMinusService.generate_for_date(db, date(2024, 1, 1))
    db.commit()

    row = _snapshot(db, date(2024, 1, 1), masters.soya, masters.indore)
    assert row["avg_buy_rate"] == 150
    assert row["buy_quantity"] == 20
    assert row["buy_quantity_kg"] == 20000


def test_contract_and_loading_scenario(db, masters, make_contract, make_loading):
    c1 = make_contract("purchase", quantity_packs=20, rate=100, trade_date=date(2024, 1, 1))
    _, pending = make_loading(c1, 12000, loading_date=date(2024, 1, 5))
    make_contract("sale", quantity_packs=5, rate=120, trade_date=date(2024, 1, 2))

    assert pending.pending_quantity_packs == 8
    position = StockService.get_positions_by_item(db, masters.soya, masters.indore)[0]
    assert position["total_purchase_packs"] == 20
    assert position["loaded_purchase_packs"] == 12

    PlusMinusService.generate_for_date(db, date(2024, 1, 2))
    db.commit()

    row = _snapshot(db, date(2024, 1, 2), masters.soya, masters.indore)
    assert row["avg_buy_rate"] == 100
    assert row["avg_sell_rate"] == 120
    assert row["profit"] == 10000
    assert row["sell_quantity"] == 5
    assert row["sell_quantity_kg"] == 5000


def test_snapshots_are_cumulative(db, masters, make_contract):
    make_contract("purchase", quantity_packs=10, rate=100, trade_date=date(2024, 1, 1))
    make_contract("purchase", quantity_packs=5, rate=110, trade_date=date(2024, 1, 3))
    make_contract("sale", quantity_packs=4, rate=115, trade_date=date(2024, 1, 3))

    days = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
    for d in days:
        PlusMinusService.generate_for_date(db, d)
    db.commit()

    rows = [_snapshot(db, d, masters.soya, masters.indore) for d in days]
    for earlier, later in zip(rows, rows[1:]):
        assert later["buy_quantity"] >= earlier["buy_quantity"]
        assert later["sell_quantity"] >= earlier["sell_quantity"]
    assert rows[0]["buy_quantity"] == 10
    assert rows[2]["buy_quantity"] == 15


def test_generate_is_idempotent(db, masters, make_contract):
    make_contract("purchase", quantity_packs=7, rate=133, trade_date=date(2024, 2, 1))
    make_contract("sale", quantity_packs=3, rate=141, trade_date=date(2024, 2, 1))

    PlusMinusService.generate_for_date(db, date(2024, 2, 1))
    db.commit()
    first = PlusMinusService.get_snapshots(db, date(2024, 2, 1))
    PlusMinusService.generate_for_date(db, date(2024, 2, 1))
    db.commit()

    assert PlusMinusService.get_snapshots(db, date(2024, 2, 1)) == first
    assert db.query(PlusMinusSnapshot).count() == 1


def test_contract_edit_refreshes_later_snapshots(db, masters, make_contract):
    contract = make_contract("purchase", quantity_packs=10, rate=100, trade_date=date(2024, 1, 1))
    PlusMinusService.generate_for_date(db, date(2024, 1, 1))
    PlusMinusService.generate_for_date(db, date(2024, 1, 5))
    db.commit()

    SaudaService.update_contract(db, contract.id, SaudaUpdate(quantity_packs=12))

    assert _snapshot(db, date(2024, 1, 1), masters.soya, masters.indore)["buy_quantity"] == 12
    assert _snapshot(db, date(2024, 1, 5), masters.soya, masters.indore)["buy_quantity"] == 12


def test_new_back_dated_contract_refreshes_existing_dates(db, masters, make_contract):
    make_contract("purchase", quantity_packs=10, rate=100, trade_date=date(2024, 1, 1))
    PlusMinusService.generate_for_date(db, date(2024, 1, 5))
    db.commit()

    make_contract("sale", quantity_packs=2, rate=130, trade_date=date(2024, 1, 3))

    row = _snapshot(db, date(2024, 1, 5), masters.soya, masters.indore)
    assert row["sell_quantity"] == 2
    assert row["profit"] == 6000


def test_moving_trade_date_drops_stale_rows(db, masters, make_contract):
    contract = make_contract("purchase", quantity_packs=10, rate=100, trade_date=date(2024, 1, 1))
    PlusMinusService.generate_for_date(db, date(2024, 1, 1))
    db.commit()

    SaudaService.update_contract(db, contract.id, SaudaUpdate(trade_date=date(2024, 1, 4)))

    assert PlusMinusService.get_snapshots(db, date(2024, 1, 1)) == []
    assert len(PlusMinusService.get_snapshots(db, date(2024, 1, 4))) == 1


def test_summary_uses_latest_snapshot_per_position(db, masters, make_contract):
    make_contract("purchase", quantity_packs=10, rate=100, trade_date=date(2024, 1, 1))
    make_contract("sale", quantity_packs=10, rate=110, trade_date=date(2024, 1, 2))
    for d in (date(2024, 1, 1), date(2024, 1, 2)):
        PlusMinusService.generate_for_date(db, d)
    db.commit()

    summary = PlusMinusService.get_summary(db, date(2024, 1, 1), date(2024, 1, 31))
    assert len(summary["item_summary"]) == 1
    assert summary["overall_summary"]["total_buy"] == 100000
    assert summary["overall_summary"]["total_sell"] == 110000
    assert summary["overall_summary"]["total_profit"] == 10000


def test_future_pl_only_counts_open_contracts(db, masters, make_contract, make_loading):
    closed = make_contract("purchase", quantity_packs=5, rate=90)
    make_loading(closed, 5000)
    make_contract("purchase", quantity_packs=10, rate=100)
    make_contract("sale", quantity_packs=4, rate=125)

    rows = PlusMinusService.get_future_pl(db)
    assert len(rows) == 1
    row = rows[0]
    assert row["product_type"] == "Soya DOC"
    assert row["buy_quantity"] == 10
    assert row["avg_buy_rate"] == 100
    assert row["profit"] == 10000


def test_prune_orphan_snapshots(db, masters, make_contract):
    make_contract("purchase", quantity_packs=10, trade_date=date(2024, 1, 1))
    PlusMinusService.generate_for_date(db, date(2024, 1, 1))
    PlusMinusService.generate_for_date(db, date(2024, 1, 9))
    db.commit()

    assert PlusMinusService.prune_orphan_snapshots(db) == 1
    db.commit()
    assert [d for (d,) in db.query(PlusMinusSnapshot.snapshot_date).all()] == [date(2024, 1, 1)]


def test_generate_updates_row_written_while_waiting_for_lock(db, masters, make_contract, monkeypatch):

    make_contract("purchase", quantity_packs=7, rate=133, trade_date=date(2024, 2, 1))
    assert db.query(PlusMinusSnapshot).count() == 0
    original = plus_minus_module.advisory_lock

    def lock_then_concurrent_insert(session, *key):
        original(session, *key)
        # the other writer held the lock and committed its row first
        session.execute(insert(PlusMinusSnapshot).values(
            snapshot_date=date(2024, 2, 1), item_id=masters.soya, ex_plant_id=masters.indore
        ))

    monkeypatch.setattr(plus_minus_module, "advisory_lock", lock_then_concurrent_insert)
    PlusMinusService.generate_for_date(db, date(2024, 2, 1))
    db.commit()

    assert db.query(PlusMinusSnapshot).count() == 1
    assert _snapshot(db, date(2024, 2, 1), masters.soya, masters.indore)["buy_quantity"] == 7


def test_plant_less_snapshot_is_unique_per_date_and_item(db, masters):

    for _ in range(2):
        db.add(PlusMinusSnapshot(snapshot_date=date(2024, 2, 1), item_id=masters.soya, ex_plant_id=None))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
