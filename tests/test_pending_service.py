from decimal import Decimal

from app.models import TradeContract
from app.services import PendingQuantityService


def test_new_contract_is_fully_pending(db, make_contract):
    contract = make_contract(quantity_packs=10)
    assert contract.pending_quantity_packs == 10


def test_partial_loading_reduces_pending(db, make_contract, make_loading):
    contract = make_contract(quantity_packs=10)
    _, update = make_loading(contract, 3000)

    assert update.pending_quantity_packs == 7
    assert update.delivered_kg == Decimal("3000.000")
    assert update.over_delivered_kg == Decimal("0.000")
    db.refresh(contract)
    assert contract.pending_quantity_packs == 7


def test_pending_rounds_half_up(db, make_contract, make_loading):
    contract = make_contract(quantity_packs=10)
    _, update = make_loading(contract, 7500)
    # 10 - 7.5 = 2.5 -> 3
    assert update.pending_quantity_packs == 3


def test_over_delivery_clamps_to_zero_and_is_reported(db, make_contract, make_loading):
    contract = make_contract(quantity_packs=5)
    make_loading(contract, 4000)
    _, update = make_loading(contract, 1200)

    assert update.pending_quantity_packs == 0
    assert update.over_delivered_kg == Decimal("200.000")


def test_update_pending_is_idempotent(db, make_contract, make_loading):
    contract = make_contract(quantity_packs=10)
    make_loading(contract, 2000)

    first = PendingQuantityService.update_pending(db, contract.id)
    second = PendingQuantityService.update_pending(db, contract.id)
    db.commit()

    assert first == second
    assert db.get(TradeContract, contract.id).pending_quantity_packs == 8


def test_missing_contract_returns_none(db):
    assert PendingQuantityService.update_pending(db, 999) is None
