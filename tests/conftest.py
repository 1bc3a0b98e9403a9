import os
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from phutho_rate.main import app
from phutho_rate.core.clock import get_now
from phutho_rate.db.base import Base
from phutho_rate.db.session import build_engine, get_db
from tests.helpers import FIXED_NOW

engine = build_engine(os.getenv("TEST_DATABASE_URL", "sqlite://"))
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(scope="session", autouse=True)
def create_test_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    """
    One outer transaction per test with a SAVEPOINT inside it, so application
    code can commit freely and everything is still rolled back afterwards.
    """
    connection = engine.connect()
    outer_tx = connection.begin()

    # commits inside the app only release a SAVEPOINT on this connection
    session = TestingSessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    try:
        yield session
    finally:
        session.close()
        outer_tx.rollback()
        connection.close()


@pytest.fixture()
def clock():
    return FrozenClock(FIXED_NOW)


@pytest.fixture(autouse=True)
def override_dependencies(db_session, clock):
    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    app.dependency_overrides[get_now] = clock
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client():
    return TestClient(app)
