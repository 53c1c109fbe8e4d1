from app.models import FulfillmentEvent
from app.services import StockService


def _contract(client, masters, quantity_packs=10):
    return client.post("/api/sauda", json={
        "transaction_type": "purchase",
        "trade_date": "2024-05-01",
        "party_id": masters.supplier,
        "item_id": masters.soya,
        "ex_plant_id": masters.indore,
        "quantity_packs": quantity_packs,
        "rate_per_10kg": "1500",
    }).json()


def _load(client, sauda_id, kg, day="2024-05-05"):
    return client.post("/api/loading", json={"sauda_id": sauda_id, "loading_date": day, "vajan_kg": str(kg)})


def test_loading_updates_pending_and_stock(client, masters):
    sauda = _contract(client, masters)

    response = _load(client, sauda["id"], 4000)
    assert response.status_code == 201
    body = response.json()
    assert body["pending_quantity_packs"] == 6
    assert body["over_delivered_kg"] == 0
    assert body["sauda_no"] == sauda["sauda_no"]

    assert client.get(f"/api/sauda/{sauda['id']}").json()["pending_quantity_packs"] == 6
    stock = client.get(f"/api/stock/item/{masters.soya}").json()[0]
    assert stock["loaded_purchase_packs"] == 4
    assert stock["pending_purchase_loading"] == 6


def test_over_delivery_is_reported(client, masters):
    sauda = _contract(client, masters, quantity_packs=2)
    body = _load(client, sauda["id"], 2300).json()
    assert body["pending_quantity_packs"] == 0
    assert body["over_delivered_kg"] == 300


def test_loading_against_unknown_sauda(client, masters):
    response = _load(client, 999, 1000)
    assert response.status_code == 400
    assert response.json() == {"error": "Sauda 999 not found"}
    assert client.get("/api/loading").json() == []


def test_non_positive_weight_rejected(client, masters):
    sauda = _contract(client, masters)
    assert _load(client, sauda["id"], 0).status_code == 422


def test_edit_and_delete_restore_pending(client, masters):
    sauda = _contract(client, masters)
    loading_id = _load(client, sauda["id"], 4000).json()["id"]

    response = client.put(f"/api/loading/{loading_id}", json={"vajan_kg": "9000"})
    assert response.json()["pending_quantity_packs"] == 1

    response = client.delete(f"/api/loading/{loading_id}")
    assert response.json()["pending_quantity_packs"] == 10
    assert client.get(f"/api/loading/{loading_id}").status_code == 404
    assert client.delete(f"/api/loading/{loading_id}").status_code == 404


def test_list_by_sauda(client, masters):
    first = _contract(client, masters)
    second = _contract(client, masters)
    _load(client, first["id"], 1000)
    _load(client, first["id"], 1000, day="2024-05-06")
    _load(client, second["id"], 1000)

    assert len(client.get("/api/loading", params={"sauda_id": first["id"]}).json()) == 2
    assert len(client.get("/api/loading", params={"date": "2024-05-06"}).json()) == 1


def test_failed_stock_refresh_rolls_back_the_loading(client, db, masters, monkeypatch):
    sauda = _contract(client, masters)

    def broken(session, item_id, ex_plant_id):
        raise RuntimeError("stock table unavailable")

    monkeypatch.setattr(StockService, "recalculate", staticmethod(broken))
    response = _load(client, sauda["id"], 4000)

    assert response.status_code == 500
    assert "error" in response.json()
    db.expire_all()
    assert db.query(FulfillmentEvent).count() == 0
    assert client.get(f"/api/sauda/{sauda['id']}").json()["pending_quantity_packs"] == 10
