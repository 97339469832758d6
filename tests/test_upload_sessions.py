from __future__ import annotations

import time
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from shiftledger.services.upload_sessions import InMemoryUploadSessionStore, StagedRow


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 22, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def _row(row_number: int) -> StagedRow:
    return StagedRow(
        row_number=row_number,
        date=date(2025, 1, 20),
        hours=Decimal("8"),
        hourly_rate=Decimal("15"),
        tag=None,
        notes=None,
    )


def test_take_consumes_session() -> None:
    store = InMemoryUploadSessionStore(ttl=timedelta(hours=1), clock=_Clock(), use_timers=False)
    session = store.create(owner_id=uuid.uuid4(), rows=[_row(2), _row(4)])

    assert session.row_numbers == frozenset({2, 4})
    assert store.take(session.upload_id) is session
    assert store.take(session.upload_id) is None
    assert len(store) == 0


def test_restore_keeps_original_expiry() -> None:
    clock = _Clock()
    store = InMemoryUploadSessionStore(ttl=timedelta(minutes=10), clock=clock, use_timers=False)
    session = store.create(owner_id=uuid.uuid4(), rows=[_row(2)])

    taken = store.take(session.upload_id)
    store.restore(taken)
    assert len(store) == 1

    clock.now += timedelta(minutes=11)
    assert store.take(session.upload_id) is None


def test_restore_after_expiry_is_dropped() -> None:
    clock = _Clock()
    store = InMemoryUploadSessionStore(ttl=timedelta(minutes=10), clock=clock, use_timers=False)
    session = store.take(store.create(owner_id=uuid.uuid4(), rows=[_row(2)]).upload_id)

    clock.now += timedelta(minutes=10)
    store.restore(session)

    assert len(store) == 0


def test_timer_evicts_expired_session() -> None:
    store = InMemoryUploadSessionStore(ttl=timedelta(milliseconds=50))
    session = store.create(owner_id=uuid.uuid4(), rows=[_row(2)])

    deadline = time.monotonic() + 5
    while len(store) and time.monotonic() < deadline:
        time.sleep(0.02)

    assert len(store) == 0
    assert store.take(session.upload_id) is None

