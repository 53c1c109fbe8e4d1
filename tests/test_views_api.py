from datetime import date

from app.models import PlusMinusSnapshot
from app.services import plus_minus_service


def _create(client, masters, transaction_type, packs, rate, trade_date="2024-01-01", **extra):
    payload = {
        "transaction_type": transaction_type,
        "trade_date": trade_date,
        "party_id": masters.supplier if transaction_type == "purchase" else masters.buyer,
        "item_id": masters.soya,
        "ex_plant_id": masters.indore,
        "quantity_packs": packs,
        "rate_per_10kg": str(rate),
    }
    payload.update(extra)
    return client.post("/api/sauda", json=payload).json()


def test_stock_endpoints(client, masters):
    _create(client, masters, "purchase", 10, 100)
    _create(client, masters, "sale", 4, 120, ex_plant_id=masters.dewas)

    assert len(client.get("/api/stock").json()) == 2
    assert client.get("/api/stock/summary").json()["net_position"] == 6
    assert len(client.get(f"/api/stock/ex-plant/{masters.dewas}").json()) == 1
    assert client.get("/api/stock/verify").json() == {"ok": True, "drift": []}

    breakdown = client.get(
        f"/api/stock/position/{masters.soya}/party-breakdown", params={"ex_plant_id": masters.indore}
    ).json()
    assert [r["party_name"] for r in breakdown] == ["Shree Traders"]
    assert len(client.get("/api/stock/party-breakdown").json()) == 2


def test_plus_minus_generate_and_read(client, masters):
    _create(client, masters, "purchase", 20, 100)
    _create(client, masters, "sale", 5, 120, trade_date="2024-01-02")

    response = client.post("/api/plusminus/generate", json={"date": "2024-01-02"})
    assert response.status_code == 200
    assert response.json()["generated"] == 1

    rows = client.get("/api/plusminus", params={"date": "2024-01-02"}).json()
    assert rows[0]["profit"] == 10000

    summary = client.get("/api/plusminus/summary").json()
    assert summary["overall_summary"]["total_profit"] == 10000

    future = client.get("/api/plusminus/future").json()
    assert future[0]["sell_quantity"] == 5


def test_today_is_a_plain_read(client, masters, monkeypatch):
    monkeypatch.setattr(plus_minus_service, "today", lambda: date(2024, 1, 2))
    _create(client, masters, "purchase", 20, 100)

    body = client.get("/api/plusminus/today").json()
    assert body == {"date": "2024-01-02", "items": [], "totals": {"total_buy": 0, "total_sell": 0, "total_profit": 0}}

    client.post("/api/plusminus/generate", json={"date": "2024-01-02"})
    assert len(client.get("/api/plusminus/today").json()["items"]) == 1


def test_recalculate_all_and_job_endpoints(client, masters):
    _create(client, masters, "purchase", 10, 100)

    response = client.post("/api/stock/recalculate-all", params={"wait": True})
    assert response.status_code == 202
    job = response.json()
    assert job["status"] == "SUCCESS"
    assert job["kind"] == "stock"

    assert client.get(f"/api/jobs/{job['id']}").json()["processed"] == 1
    assert client.post(f"/api/jobs/{job['id']}/cancel").status_code == 409
    assert client.post(f"/api/jobs/{job['id']}/resume").status_code == 409
    assert client.get("/api/jobs/999").status_code == 404

    job = client.post("/api/plusminus/recalculate-all").json()
    assert job["status"] == "SUCCESS"
    assert len(client.get("/api/jobs").json()) == 2


def test_status_and_health(client):
    assert client.get("/api/status").json()["status"] == "ok"
    assert client.get("/health").json()["status"] == "healthy"


def test_generate_commits_snapshots(client, db, masters):
    _create(client, masters, "purchase", 20, 100)

    client.post("/api/plusminus/generate", json={"date": "2024-01-01"})

    db.expire_all()
    assert db.query(PlusMinusSnapshot).filter(PlusMinusSnapshot.snapshot_date == date(2024, 1, 1)).count() == 1
