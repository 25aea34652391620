"""
Shared fixtures: a throwaway SQLite database per test, a pinned clock,
and a TestClient wired to both.
"""

import os

# Before any app import: never touch the default PostgreSQL URL in tests
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("SYNC_PUSH_ISOLATION_LEVEL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.database import Base, build_engine, get_db
from app.services.sync_clock import SyncClock, get_clock
import app.models  # noqa: F401  (register tables on Base)


class FakeClock(SyncClock):
    """Clock pinned to a value, moved only by the test."""

    def __init__(self, now: int = 10_000):
        super().__init__(source=lambda: self.now)
        self.now = now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'sync.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(session_factory, clock):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db):
    """
    Insert a record with explicit sync metadata, bypassing the services.

    Usage:
        seed(Product, "prod_1", last_modified=1000, name="Initial Product")
    """

    def _seed(model, record_id, last_modified, server_created_at=None, is_deleted=False, **fields):
        if model.__tablename__ == "products":
            fields.setdefault("name", f"Product {record_id}")
        else:
            fields.setdefault("item_number", f"ITEM-{record_id}")
            fields.setdefault("batch_number", f"LOT-{record_id}")
        record = model(
            id=record_id,
            last_modified=last_modified,
            server_created_at=last_modified if server_created_at is None else server_created_at,
            is_deleted=is_deleted,
            **fields,
        )
        db.add(record)
        db.commit()
        return record

    return _seed
