import io

import pytest
from PIL import Image
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carmarket.app.backend_client import BackendClient
from carmarket.app.models import Base, Brand, CarModel
from carmarket.app.services.session_context import reconcile_profile
from carmarket.app.services.storage_service import ObjectStorage


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    # let SQLAlchemy own BEGIN so SAVEPOINTs behave on pysqlite
    @event.listens_for(eng, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return ObjectStorage(tmp_path / "storage", "/storage")


@pytest.fixture
def client(db, storage):
    return BackendClient.create(db, storage=storage)


@pytest.fixture
def catalog(db):
    """Two brands with a couple of models each."""
    toyota = Brand(name="Toyota")
    honda = Brand(name="Honda")
    db.add_all([toyota, honda])
    db.flush()
    camry = CarModel(brand_id=toyota.id, name="Camry")
    corolla = CarModel(brand_id=toyota.id, name="Corolla")
    civic = CarModel(brand_id=honda.id, name="Civic")
    db.add_all([camry, corolla, civic])
    db.commit()
    return {"toyota": toyota, "honda": honda, "camry": camry, "corolla": corolla, "civic": civic}


def make_png(color=(200, 30, 30), size=(8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def make_user(client):
    """Register an auth user and reconcile its profile; returns the profile."""
    counter = {"n": 0}

    def _make(email=None, full_name="Test User", phone_number="+97455500000", role=None):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        session = client.auth.sign_up(email, "Secret123!", {"full_name": full_name, "phone_number": phone_number})
        profile = reconcile_profile(client, session.user)
        if role is not None:
            profile.role = role
            client.db.commit()
        return profile

    return _make


@pytest.fixture
def image_factory():
    return make_png
