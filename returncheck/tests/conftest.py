# tests/conftest.py
import os

os.environ.setdefault("PHONE_HASH_SALT", "unit-test-salt")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["ENV"] = "test"
os.environ["GEOLOCATION_ENABLED"] = "false"
os.environ["RATE_LIMIT_BACKEND"] = "memory"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from returncheck.config import Settings
from returncheck.database import Base, get_db
from returncheck import models  # noqa: F401
from returncheck.main import create_app
from returncheck.services.rate_limit import InMemoryRateLimiter

class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def ms(self) -> int:
        return int(self.now.timestamp() * 1000)

    def advance(self, **kw) -> None:
        self.now += timedelta(**kw)

@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()

@pytest.fixture
def SessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

@pytest.fixture
def db(SessionLocal):
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

@pytest.fixture
def make_client(SessionLocal, clock):
    """Build a TestClient; keyword args override Settings fields."""
    def _make(**overrides):
        settings = Settings(**overrides)
        app = create_app(settings, rate_limiter=InMemoryRateLimiter(clock=clock.ms), clock=clock)

        def _get_db():
            s = SessionLocal()
            try:
                yield s
            finally:
                s.close()

        app.dependency_overrides[get_db] = _get_db
        return TestClient(app)
    return _make

@pytest.fixture
def client(make_client):
    return make_client()
