from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shiftledger.core.clock import get_clock
from shiftledger.core.config import get_settings
from shiftledger.db.base import Base
from shiftledger.db.dependencies import get_db_session
import shiftledger.models.entities  # noqa: F401
from shiftledger.main import create_app
from shiftledger.models.entities import Expense, Schedule, User
from shiftledger.services.receipts import LocalReceiptStore, get_receipt_store
from shiftledger.services.upload_sessions import InMemoryUploadSessionStore, get_upload_session_store

TEST_TABLES = [
    User.__table__,
    Schedule.__table__,
    Expense.__table__,
]

# Wednesday; the current ISO week starts on Monday 2025-01-20.
FIXED_NOW = datetime(2025, 1, 22, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


@pytest.fixture()
def upload_store(clock: FrozenClock) -> InMemoryUploadSessionStore:
    return InMemoryUploadSessionStore(ttl=timedelta(hours=1), clock=clock, use_timers=False)


@pytest.fixture()
def receipt_dir(tmp_path: Path) -> Path:
    path = tmp_path / "receipts"
    path.mkdir()
    return path


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(
    db_session: Session,
    clock: FrozenClock,
    upload_store: InMemoryUploadSessionStore,
    receipt_dir: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[TestClient, None, None]:
    monkeypatch.setattr(get_settings(), "upload_dir", str(tmp_path / "uploads"))
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_upload_session_store] = lambda: upload_store
    app.dependency_overrides[get_receipt_store] = lambda: LocalReceiptStore(receipt_dir)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
