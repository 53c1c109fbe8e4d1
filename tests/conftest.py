import os
import sys
import tempfile
from datetime import date
from types import SimpleNamespace

# Settings are read at import time
os.environ["DATABASE_URI"] = "sqlite://"
os.environ["BACKFILL_ENABLED"] = "false"
os.environ["LOGS_PATH"] = tempfile.mkdtemp(prefix="sauda_logs_")
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core import Base, get_db
from app.core.database import install_sqlite_pragmas
from app.jobs import RecalcJobRunner
from app.models import Item, ExPlant, Party, Broker
from app.schemas import SaudaCreate, LoadingCreate
from app.services import SaudaService, LoadingService
from app.api.deps import get_job_runner

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
install_sqlite_pragmas(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def masters(db):
    """Two items, two plants, a supplier, two buyers and a broker"""
    soya = Item(item_name="Soya DOC")
    mustard = Item(item_name="Mustard Oil")
    indore = ExPlant(plant_name="Indore")
    dewas = ExPlant(plant_name="Dewas")
    supplier = Party(party_name="Shree Traders", party_type="supplier")
    buyer = Party(party_name="Ganesh Agro", party_type="buyer")
    buyer2 = Party(party_name="Mahalaxmi Feeds", party_type="buyer")
    broker = Broker(broker_name="Ramesh Brokerage")
    db.add_all([soya, mustard, indore, dewas, supplier, buyer, buyer2, broker])
    db.commit()
    return SimpleNamespace(
        soya=soya.id, mustard=mustard.id,
        indore=indore.id, dewas=dewas.id,
        supplier=supplier.id, buyer=buyer.id, buyer2=buyer2.id,
        broker=broker.id,
    )


@pytest.fixture
def make_contract(db, masters):
    def _make(transaction_type="purchase", quantity_packs=10, rate=1500, trade_date=date(2024, 5, 1),
              item_id=None, ex_plant_id="default", party_id=None, sauda_no=None):
        if ex_plant_id == "default":
            ex_plant_id = masters.indore
        if party_id is None:
            party_id = masters.supplier if transaction_type == "purchase" else masters.buyer
        return SaudaService.create_contract(db, SaudaCreate(
            sauda_no=sauda_no,
            transaction_type=transaction_type,
            trade_date=trade_date,
            party_id=party_id,
            item_id=item_id or masters.soya,
            ex_plant_id=ex_plant_id,
            broker_id=masters.broker,
            quantity_packs=quantity_packs,
            rate_per_10kg=rate,
        ))
    return _make


@pytest.fixture
def make_loading(db):
    def _make(contract, vajan_kg, loading_date=date(2024, 5, 10)):
        return LoadingService.create_loading(db, LoadingCreate(
            sauda_id=contract.id,
            loading_date=loading_date,
            vajan_kg=vajan_kg,
            vehicle_no="MP09 AB 1234",
        ))
    return _make


@pytest.fixture
def runner():
    return RecalcJobRunner(session_factory=TestingSessionLocal)


@pytest.fixture
def client(db, runner):
    from main import app

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_runner] = lambda: runner
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
