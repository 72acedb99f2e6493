import os

# Settings are read at import time
os.environ["ONEC_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-signing-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import ledger_sync.models  # noqa: F401
from ledger_sync.database import Base, build_engine, get_db
from ledger_sync.main import app
from ledger_sync.services.sync_ledger import SyncRunLedger, get_sync_ledger
from ledger_sync.utils.tokenJWT import create_buyer_token


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger_sync_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(engine):
    # Seeding session; rows stay readable after commit without touching the database
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_ledger] = lambda: SyncRunLedger(session_factory)
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture()
def buyer_headers():
    def _headers(user_id=1):
        return {"Authorization": f"Bearer {create_buyer_token(user_id)}"}
    return _headers
