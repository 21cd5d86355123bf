import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from perfeval.main import app
from perfeval.db.base import Base
from perfeval.db.session import get_db, make_engine
from perfeval.db.store import SqlStore


@pytest.fixture()
def engine():
    """
    A private in-memory SQLite database per test.

    StaticPool keeps the single connection alive so every session (and the
    TestClient's worker thread) sees the same database.
    """
    eng = make_engine("sqlite+pysqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def store(db_session):
    return SqlStore(db_session)


@pytest.fixture(autouse=True)
def override_get_db(db_session):
    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client():
    return TestClient(app)
