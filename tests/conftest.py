"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from asset_metadata.api import app
from asset_metadata.db import models  # noqa: F401
from asset_metadata.db.base import Base, get_db
from asset_metadata.db.models import ComponentFirmwareVersionModel, generate_uuid


class FakeClock:
    """A clock that moves forward one second on every reading."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """API client bound to the test database.

    The lifespan is not entered, so the service's own engine is never built.
    """

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_firmware(db_session, clock):
    """Insert firmware versions directly; returns their ids."""

    def _make(count: int = 1, vendor: str = "dell", model=("r640",)):
        ids = []
        for _ in range(count):
            now = clock()
            row = ComponentFirmwareVersionModel(
                id=generate_uuid(),
                vendor=vendor,
                model=list(model),
                filename=f"bios-{generate_uuid()[:8]}.bin",
                version="2.17.1",
                component="bios",
                created_at=now,
                updated_at=now,
            )
            db_session.add(row)
            ids.append(row.id)
        db_session.commit()
        return ids

    return _make
