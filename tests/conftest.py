import os

# Движок создается при импорте immomatch.database, поэтому URL задается до импорта
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from immomatch.database import Base, get_db
from immomatch.models import Buyer, Client, Property, SharedProperty
from immomatch.services.property_matcher import MatchTolerances

MILAN_CENTER = {"lat": 45.4642, "lng": 9.1900}

# Квадрат ~1.5 x 1.5 км вокруг центра Милана, кольцо в порядке (lng, lat)
MILAN_SQUARE = [
    [9.180, 45.458],
    [9.200, 45.458],
    [9.200, 45.471],
    [9.180, 45.471],
    [9.180, 45.458],
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from immomatch.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def tolerances():
    return MatchTolerances()


@pytest.fixture
def make_buyer(db):
    def _make_buyer(first_name="Mario", client_type="buyer", **criteria):
        client = Client(type=client_type, first_name=first_name, last_name="Rossi")
        db.add(client)
        db.flush()
        buyer = Buyer(client_id=client.id, **criteria)
        db.add(buyer)
        db.commit()
        return buyer
    return _make_buyer


@pytest.fixture
def make_property(db):
    def _make_property(**fields):
        fields.setdefault("status", "available")
        prop = Property(**fields)
        db.add(prop)
        db.commit()
        return prop
    return _make_property


@pytest.fixture
def make_shared_property(db):
    def _make_shared_property(**fields):
        fields.setdefault("address", "Via Roma 10")
        fields.setdefault("agencies", [])
        fields.setdefault("match_buyers", True)
        fields.setdefault("is_ignored", False)
        fields.setdefault("is_acquired", False)
        shared = SharedProperty(**fields)
        db.add(shared)
        db.commit()
        return shared
    return _make_shared_property
