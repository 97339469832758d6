"""Application service for schedule lifecycle and weekly-repeat generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext
from shiftledger.core.clock import Clock, utc_now
from shiftledger.core.errors import NotFound, ValidationError
from shiftledger.models.entities import PayType, Schedule
from shiftledger.repositories.tracker_repository import TrackerRepository
from shiftledger.services.pay import MAX_HOURS, calculate_pay, to_amount
from shiftledger.services.periods import add_months

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def weekday_label(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def is_future_day(day: date, now: datetime) -> bool:
    return day >= now.date()


@dataclass(slots=True)
class ScheduleData:
    """Full field set for a schedule; edits replace every field."""

    date: date
    pay_type: PayType
    hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    monthly_salary: Decimal | None = None
    tag: str | None = None
    notes: str | None = None


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def clean_pay_fields(data: ScheduleData) -> ScheduleData:
    """Return ``data`` with amounts quantized to 0.01.

    Raises ``ValidationError`` unless exactly the field set of ``data.pay_type``
    is populated and every amount fits its column and range after quantizing.
    """

    hours = to_amount(data.hours)
    hourly_rate = to_amount(data.hourly_rate)
    monthly_salary = to_amount(data.monthly_salary)

    errors = []
    if data.pay_type is PayType.HOURLY:
        if hours is None or not (Decimal("0") < hours <= MAX_HOURS):
            errors.append({"field": "hours", "message": "hours must be greater than 0 and at most 24."})
        if hourly_rate is None or hourly_rate < Decimal("0"):
            errors.append(
                {"field": "hourly_rate", "message": "hourly_rate must be greater or equal zero and fit in 12 digits."}
            )
        if data.monthly_salary is not None:
            errors.append({"field": "monthly_salary", "message": "monthly_salary must be empty for hourly pay."})
    else:
        if monthly_salary is None or monthly_salary <= Decimal("0"):
            errors.append(
                {"field": "monthly_salary", "message": "monthly_salary must be greater than 0 and fit in 12 digits."}
            )
        if data.hours is not None or data.hourly_rate is not None:
            errors.append({"field": "hours", "message": "hours and hourly_rate must be empty for monthly pay."})
    if errors:
        raise ValidationError(errors)
    return replace(data, hours=hours, hourly_rate=hourly_rate, monthly_salary=monthly_salary)


def weekly_repeat_dates(start: date, weekdays: set[int]) -> list[date]:
    """Every date on ``weekdays`` from ``start`` up to, not including, one calendar month later."""

    stop = add_months(start, 1)
    days: list[date] = []
    current = start
    while current < stop:
        if current.weekday() in weekdays:
            days.append(current)
        current += timedelta(days=1)
    return days


class ScheduleService:
    """Owner-scoped schedule CRUD."""

    def __init__(self, db: Session, *, clock: Clock = utc_now) -> None:
        self.db = db
        self.repo = TrackerRepository(db)
        self.clock = clock

    @staticmethod
    def serialize_schedule(row: Schedule) -> dict[str, object]:
        return {
            "id": str(row.id),
            "date": row.date.isoformat(),
            "day_of_week": row.day_of_week,
            "pay_type": row.pay_type.value,
            "hours": str(row.hours) if row.hours is not None else None,
            "hourly_rate": str(row.hourly_rate) if row.hourly_rate is not None else None,
            "monthly_salary": str(row.monthly_salary) if row.monthly_salary is not None else None,
            "tag": row.tag,
            "notes": row.notes,
            "is_future": row.is_future,
            "calculated_pay": str(calculate_pay(row)),
        }

    def build_schedule(self, *, owner_id: UUID, data: ScheduleData) -> Schedule:
        now = self.clock()
        return Schedule(
            owner_id=owner_id,
            date=data.date,
            day_of_week=weekday_label(data.date),
            pay_type=data.pay_type,
            hours=data.hours,
            hourly_rate=data.hourly_rate,
            monthly_salary=data.monthly_salary,
            tag=_clean_text(data.tag),
            notes=_clean_text(data.notes),
            is_future=is_future_day(data.date, now),
            created_at=now,
            updated_at=now,
        )

    def _get_owned(self, *, context: RequestUserContext, schedule_id: UUID) -> Schedule:
        row = self.repo.get_schedule(context.user_id, schedule_id)
        if row is None:
            raise NotFound("Schedule not found.")
        return row

    def list_schedules(
        self,
        *,
        context: RequestUserContext,
        upcoming: bool = False,
        from_day: date | None = None,
        to_day: date | None = None,
    ) -> list[Schedule]:
        if from_day is not None and to_day is not None and from_day > to_day:
            raise ValidationError("start_date must be on or before end_date.")
        return self.repo.list_schedules(context.user_id, from_day=from_day, to_day=to_day, future_only=upcoming)

    def get_schedule(self, *, context: RequestUserContext, schedule_id: UUID) -> Schedule:
        return self._get_owned(context=context, schedule_id=schedule_id)

    def create_schedule(self, *, context: RequestUserContext, data: ScheduleData) -> Schedule:
        data = clean_pay_fields(data)
        row = self.repo.add_schedule(self.build_schedule(owner_id=context.user_id, data=data))
        self.db.commit()
        self.db.refresh(row)
        return row

    def create_weekly_repeat(
        self,
        *,
        context: RequestUserContext,
        data: ScheduleData,
        repeat_days: list[str],
    ) -> list[Schedule]:
        data = clean_pay_fields(data)

        lookup = {name.lower(): index for index, name in enumerate(WEEKDAY_NAMES)}
        lookup.update({name[:3].lower(): index for index, name in enumerate(WEEKDAY_NAMES)})
        unknown = [day for day in repeat_days if day.strip().lower() not in lookup]
        if unknown:
            raise ValidationError(f"Unknown weekday values: {', '.join(unknown)}")
        weekdays = {lookup[day.strip().lower()] for day in repeat_days}
        if not weekdays:
            raise ValidationError("repeat_days must name at least one weekday.")

        dates = weekly_repeat_dates(data.date, weekdays)
        rows = [
            self.build_schedule(
                owner_id=context.user_id,
                data=ScheduleData(
                    date=day,
                    pay_type=data.pay_type,
                    hours=data.hours,
                    hourly_rate=data.hourly_rate,
                    monthly_salary=data.monthly_salary,
                    tag=data.tag,
                    notes=data.notes,
                ),
            )
            for day in dates
        ]

        try:
            self.repo.add_schedules(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Generated %d repeated schedules for user %s", len(rows), context.user_id)
        for row in rows:
            self.db.refresh(row)
        return rows

    def update_schedule(self, *, context: RequestUserContext, schedule_id: UUID, data: ScheduleData) -> Schedule:
        data = clean_pay_fields(data)
        row = self._get_owned(context=context, schedule_id=schedule_id)

        now = self.clock()
        row.date = data.date
        row.day_of_week = weekday_label(data.date)
        row.pay_type = data.pay_type
        row.hours = data.hours
        row.hourly_rate = data.hourly_rate
        row.monthly_salary = data.monthly_salary
        row.tag = _clean_text(data.tag)
        row.notes = _clean_text(data.notes)
        row.is_future = is_future_day(data.date, now)
        row.updated_at = now

        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_schedule(self, *, context: RequestUserContext, schedule_id: UUID) -> None:
        row = self._get_owned(context=context, schedule_id=schedule_id)
        self.repo.delete_schedule(row)
        self.db.commit()
