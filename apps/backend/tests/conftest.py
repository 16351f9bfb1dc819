from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Generator

# Point the app at a throwaway SQLite file before anything reads settings
_fd, _TEST_DB_PATH = tempfile.mkstemp(prefix="dualcash_test_", suffix=".sqlite3")
os.close(_fd)
os.environ["DUALCASH_DATABASE_URL"] = f"sqlite:///{_TEST_DB_PATH}"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dualcash import models  # noqa: F401 - register tables
from dualcash.core.database import Base, get_db
from dualcash.core.deps import get_rate_cache
from dualcash.main import app
from dualcash.services.rates import RateCache, RateSnapshot


class FakeClock:
    """Wall clock for services; only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 2, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeRateProvider:
    def __init__(self, snapshot: RateSnapshot | None = None, error: Exception | None = None) -> None:
        self.snapshot = snapshot
        self.error = error
        self.calls = 0

    def fetch_rates(self) -> RateSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot


def make_snapshot(**overrides: Any) -> RateSnapshot:
    values = {
        "bcv": Decimal("36.5"),
        "euro": Decimal("40.0"),
        "usdt": Decimal("45.0"),
        "updated_at": datetime(2026, 2, 1, 12, 0, 0),
    }
    values.update(overrides)
    return RateSnapshot(**values)


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    url = os.environ["DUALCASH_DATABASE_URL"]
    yield url
    try:
        os.remove(_TEST_DB_PATH)
    except OSError:
        pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = create_engine(test_db_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Wipe every table so each test starts empty
        with engine.begin() as conn:
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def rate_provider() -> FakeRateProvider:
    return FakeRateProvider(snapshot=make_snapshot())


@pytest.fixture()
def rate_cache(rate_provider: FakeRateProvider) -> Generator[RateCache, Any, Any]:
    cache = RateCache(rate_provider, clock=FakeMonotonic())
    yield cache
    cache.close()


@pytest.fixture(autouse=True)
def override_dependency(db_session, rate_cache):
    # FastAPI DI override
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    app.dependency_overrides[get_rate_cache] = lambda: rate_cache
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app, headers={"x-user-id": "user-1"}) as c:
        yield c


@pytest.fixture()
def other_client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app, headers={"x-user-id": "user-2"}) as c:
        yield c
