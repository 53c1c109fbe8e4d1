from app.services import PartyBreakdownService


def test_breakdown_groups_by_party(db, masters, make_contract, make_loading):
    purchase = make_contract("purchase", quantity_packs=10, rate=100)
    make_contract("sale", quantity_packs=4, rate=120, party_id=masters.buyer)
    make_contract("sale", quantity_packs=2, rate=130, party_id=masters.buyer2)
    make_loading(purchase, 3000)

    rows = {r["party_name"]: r for r in PartyBreakdownService.get_breakdown(db, masters.soya, masters.indore)}

    assert set(rows) == {"Shree Traders", "Ganesh Agro", "Mahalaxmi Feeds"}
    supplier = rows["Shree Traders"]
    assert supplier["buy_packs"] == 10
    assert supplier["buy_value"] == 100000
    assert supplier["buy_loaded_packs"] == 3
    assert supplier["pending_buy_packs"] == 7
    assert supplier["sell_packs"] == 0
    assert rows["Ganesh Agro"]["sell_value"] == 48000
    assert rows["Mahalaxmi Feeds"]["avg_sell_rate"] == 130


def test_multiple_loadings_do_not_inflate_contract_quantity(db, masters, make_contract, make_loading):
    purchase = make_contract("purchase", quantity_packs=10, rate=100)
    for _ in range(3):
        make_loading(purchase, 1000)

    row = PartyBreakdownService.get_breakdown(db, masters.soya, masters.indore)[0]
    assert row["buy_packs"] == 10
    assert row["buy_loaded_packs"] == 3
    assert row["buy_loaded_value"] == 30000


def test_party_on_both_sides_is_one_row(db, masters, make_contract):
    make_contract("purchase", quantity_packs=6, rate=100, party_id=masters.buyer)
    make_contract("sale", quantity_packs=2, rate=110, party_id=masters.buyer)

    rows = PartyBreakdownService.get_breakdown(db, masters.soya, masters.indore)
    assert len(rows) == 1
    assert rows[0]["net_packs"] == 4


def test_pending_only_hides_settled_parties(db, masters, make_contract, make_loading):
    settled = make_contract("purchase", quantity_packs=2, rate=100)
    make_loading(settled, 2000)
    make_contract("sale", quantity_packs=3, rate=110)

    rows = PartyBreakdownService.get_breakdown(db, masters.soya, masters.indore, pending_only=True)
    assert [r["party_name"] for r in rows] == ["Ganesh Agro"]


def test_all_breakdowns_cover_every_position(db, masters, make_contract):
    make_contract("purchase", quantity_packs=2, ex_plant_id=masters.indore)
    make_contract("purchase", quantity_packs=2, ex_plant_id=None, item_id=masters.mustard)

    result = PartyBreakdownService.get_all_breakdowns(db)
    assert {(r["item_name"], r["ex_plant_name"]) for r in result} == {("Soya DOC", "Indore"), ("Mustard Oil", None)}
