"""Short-lived staging store for bulk schedule uploads.

The in-memory implementation is process-local: staged uploads do not survive
a restart, and upload and confirm must reach the same process. Deployments
running several workers need an implementation of :class:`UploadSessionStore`
backed by a shared expiring key-value store.
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from shiftledger.core.clock import Clock, utc_now
from shiftledger.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StagedRow:
    """A validated import row waiting for confirmation."""

    row_number: int
    date: date
    hours: Decimal
    hourly_rate: Decimal
    tag: str | None
    notes: str | None


@dataclass(slots=True)
class UploadSession:
    upload_id: str
    owner_id: UUID
    rows: list[StagedRow]
    expires_at: datetime
    source_filename: str | None = None
    row_numbers: frozenset[int] = field(init=False)

    def __post_init__(self) -> None:
        self.row_numbers = frozenset(row.row_number for row in self.rows)


class UploadSessionStore(Protocol):
    def create(self, *, owner_id: UUID, rows: list[StagedRow], source_filename: str | None = None) -> UploadSession:
        ...

    def take(self, upload_id: str) -> UploadSession | None:
        """Remove and return a live session, or ``None`` when unknown or expired."""
        ...

    def restore(self, session: UploadSession) -> None:
        """Put back a session previously taken, keeping its original expiry."""
        ...


class InMemoryUploadSessionStore:
    """Dict-backed store with one eviction timer per entry."""

    def __init__(self, *, ttl: timedelta, clock: Clock = utc_now, use_timers: bool = True) -> None:
        self.ttl = ttl
        self.clock = clock
        self.use_timers = use_timers
        self._sessions: dict[str, UploadSession] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _schedule_eviction(self, session: UploadSession) -> None:
        if not self.use_timers:
            return
        delay = max((session.expires_at - self.clock()).total_seconds(), 0.0)
        timer = threading.Timer(delay, self._expire, args=(session.upload_id,))
        timer.daemon = True
        self._timers[session.upload_id] = timer
        timer.start()

    def _cancel_eviction(self, upload_id: str) -> None:
        timer = self._timers.pop(upload_id, None)
        if timer is not None:
            timer.cancel()

    def _expire(self, upload_id: str) -> None:
        with self._lock:
            self._timers.pop(upload_id, None)
            if self._sessions.pop(upload_id, None) is not None:
                logger.info("Upload session %s expired unconfirmed", upload_id)

    def create(self, *, owner_id: UUID, rows: list[StagedRow], source_filename: str | None = None) -> UploadSession:
        session = UploadSession(
            upload_id=secrets.token_urlsafe(24),
            owner_id=owner_id,
            rows=list(rows),
            expires_at=self.clock() + self.ttl,
            source_filename=source_filename,
        )
        with self._lock:
            self._sessions[session.upload_id] = session
            self._schedule_eviction(session)
        return session

    def take(self, upload_id: str) -> UploadSession | None:
        with self._lock:
            session = self._sessions.pop(upload_id, None)
            self._cancel_eviction(upload_id)
            if session is None:
                return None
            if session.expires_at <= self.clock():
                logger.info("Upload session %s expired unconfirmed", upload_id)
                return None
            return session

    def restore(self, session: UploadSession) -> None:
        with self._lock:
            if session.expires_at <= self.clock():
                return
            self._sessions[session.upload_id] = session
            self._schedule_eviction(session)


_default_store: InMemoryUploadSessionStore | None = None
_default_store_lock = threading.Lock()


def get_upload_session_store() -> UploadSessionStore:
    """FastAPI dependency returning the process-wide store."""

    global _default_store
    with _default_store_lock:
        if _default_store is None:
            settings = get_settings()
            _default_store = InMemoryUploadSessionStore(
                ttl=timedelta(seconds=settings.upload_session_ttl_seconds),
            )
        return _default_store
