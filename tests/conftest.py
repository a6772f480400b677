"""
Shared fixtures: in-memory SQLite database, session factories, a fake image
uploader and a FastAPI TestClient wired to both.

The lifespan is not entered (no `with TestClient(...)`), so the chain
reconciler never starts during API tests.
"""
import os
from contextlib import contextmanager

# Must be set before app modules read their configuration
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CHAIN_RPC_URL"] = ""
os.environ["SEPOLIA_RPC_URL"] = ""
os.environ["CONTRACT_ADDRESS"] = ""
os.environ["CLOUDINARY_CLOUD_NAME"] = ""
os.environ["CLOUDINARY_API_KEY"] = ""
os.environ["CLOUDINARY_API_SECRET"] = ""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base


OWNER = "0xABCDEF0000000000000000000000000000000001"
DONOR = "0xDEF0000000000000000000000000000000000002"
ONE_ETH = "1000000000000000000"
HALF_ETH = "500000000000000000"


class FakeUploader:
    """Stands in for ImageUploader; returns `url` (None simulates a failed upload)"""

    def __init__(self, url=None):
        self.url = url
        self.calls = []

    def upload_campaign_image(self, content, filename, contract_id):
        self.calls.append(("campaign", filename, contract_id))
        return self.url

    def upload_avatar(self, content, filename, address):
        self.calls.append(("avatar", filename, address))
        return self.url


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
def SessionTesting(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(SessionTesting):
    session = SessionTesting()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory(SessionTesting):
    """Same contract as app.db.session.get_db_session, bound to the test engine"""

    @contextmanager
    def factory():
        session = SessionTesting()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def client(SessionTesting, uploader):
    from fastapi.testclient import TestClient
    from app.main import app
    from app.db.session import get_db
    from app.services import get_image_uploader

    def override_get_db():
        session = SessionTesting()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_uploader] = lambda: uploader
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
