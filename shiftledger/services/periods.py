"""Period resolution for dashboards and reports.

Period tokens resolve against a caller-supplied ``now`` so results are
deterministic under test. All bounds are UTC. Weeks are ISO weeks starting on
Monday.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

from shiftledger.core.errors import InvalidRange

END_OF_DAY = time(23, 59, 59, 999000)


class PeriodToken(str, Enum):
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"
    LAST_4_WEEKS = "last4weeks"


@dataclass(frozen=True, slots=True)
class ResolvedPeriod:
    """Concrete range for a period token.

    ``[start, end)`` for every token except ``custom``, whose ``end`` is the
    last millisecond of the end date and is inclusive.
    """

    token: PeriodToken
    start: datetime
    end: datetime
    inclusive_end: bool = False

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        if self.inclusive_end:
            return self.end.date()
        return (self.end - timedelta(microseconds=1)).date()

    def contains(self, moment: date | datetime) -> bool:
        if not isinstance(moment, datetime):
            moment = _midnight(moment)
        if moment < self.start:
            return False
        if self.inclusive_end:
            return moment <= self.end
        return moment < self.end

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    def serialize(self) -> dict[str, str]:
        return {
            "period": self.token.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "first_day": self.first_day.isoformat(),
            "last_day": self.last_day.isoformat(),
        }


def _midnight(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def parse_iso_date(value: date | str | None) -> date | None:
    """Parse ``YYYY-MM-DD``; ``None`` for missing or malformed input."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""

    return day - timedelta(days=day.weekday())


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole calendar months, clamping to the target month's last day."""

    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    next_month_first = date(year + (month // 12), month % 12 + 1, 1)
    last_day = (next_month_first - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


def resolve_period(
    period: str | PeriodToken,
    *,
    now: datetime,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> ResolvedPeriod:
    try:
        token = PeriodToken(period)
    except ValueError as exc:
        raise InvalidRange(
            f"Unknown period '{period}'. Expected one of: week, month, custom, last4weeks."
        ) from exc

    now_utc = _as_utc(now)
    today = now_utc.date()

    if token is PeriodToken.WEEK:
        start = _midnight(week_start(today))
        return ResolvedPeriod(token=token, start=start, end=start + timedelta(days=7))

    if token is PeriodToken.MONTH:
        first = date(today.year, today.month, 1)
        return ResolvedPeriod(token=token, start=_midnight(first), end=_midnight(add_months(first, 1)))

    if token is PeriodToken.LAST_4_WEEKS:
        return ResolvedPeriod(token=token, start=_midnight(today - timedelta(days=28)), end=now_utc)

    start_day = parse_iso_date(start_date)
    end_day = parse_iso_date(end_date)
    if start_day is None or end_day is None:
        raise InvalidRange("Custom date range requires start_date and end_date as YYYY-MM-DD.")
    if start_day > end_day:
        raise InvalidRange("start_date must be on or before end_date.")
    return ResolvedPeriod(
        token=token,
        start=_midnight(start_day),
        end=datetime.combine(end_day, END_OF_DAY, tzinfo=timezone.utc),
        inclusive_end=True,
    )
