"""Dashboard aggregation over schedules and expenses."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext
from shiftledger.models.entities import Expense, Schedule
from shiftledger.repositories.tracker_repository import TrackerRepository
from shiftledger.services.pay import ZERO, calculate_pay, is_hourly, is_monthly, q2
from shiftledger.services.periods import PeriodToken, ResolvedPeriod

WEEKDAY_SHORT = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True, slots=True)
class IncomeTotals:
    total_income: Decimal
    monthly_income: Decimal
    total_expenses: Decimal

    @property
    def net_profit(self) -> Decimal:
        return q2(self.total_income - self.total_expenses)

    def serialize(self) -> dict[str, str]:
        return {
            "total_income": str(self.total_income),
            "monthly_income": str(self.monthly_income),
            "total_expenses": str(self.total_expenses),
            "net_profit": str(self.net_profit),
        }


def compute_totals(schedules: Iterable[Schedule], expenses: Iterable[Expense]) -> IncomeTotals:
    """Headline totals.

    ``total_income`` counts hourly schedules only; salaried schedules are
    reported separately as ``monthly_income``.
    """

    total_income = ZERO
    monthly_income = ZERO
    for row in schedules:
        if is_hourly(row):
            total_income += calculate_pay(row)
        elif is_monthly(row):
            monthly_income += calculate_pay(row)

    total_expenses = sum((row.amount for row in expenses), ZERO)
    return IncomeTotals(
        total_income=q2(total_income),
        monthly_income=q2(monthly_income),
        total_expenses=q2(total_expenses),
    )


def income_by_weekday(schedules: Iterable[Schedule]) -> list[dict[str, str]]:
    buckets = [ZERO] * 7
    for row in schedules:
        if is_hourly(row):
            buckets[row.date.weekday()] += calculate_pay(row)
    return [{"day": label, "income": str(q2(amount))} for label, amount in zip(WEEKDAY_SHORT, buckets)]


def expenses_by_category(expenses: Iterable[Expense]) -> list[dict[str, str]]:
    grouped: dict[str, Decimal] = {}
    for row in expenses:
        key = row.category or UNCATEGORIZED
        grouped[key] = grouped.get(key, ZERO) + row.amount
    return [{"category": key, "amount": str(q2(grouped[key]))} for key in sorted(grouped)]


def weekly_trend(
    period: ResolvedPeriod,
    schedules: Sequence[Schedule],
    expenses: Sequence[Expense],
) -> list[dict[str, str]]:
    """Income and expenses per 7-day bucket counted from the period start."""

    if period.token is PeriodToken.WEEK:
        bucket_count = 1
    else:
        bucket_count = max(math.ceil(period.span / timedelta(days=7)), 1)

    first_day = period.first_day
    income = [ZERO] * bucket_count
    spent = [ZERO] * bucket_count

    def bucket_of(day: date) -> int:
        return min(max((day - first_day).days // 7, 0), bucket_count - 1)

    for row in schedules:
        if is_hourly(row):
            income[bucket_of(row.date)] += calculate_pay(row)
    for row in expenses:
        spent[bucket_of(row.date)] += row.amount

    return [
        {
            "week": f"Week {index + 1}",
            "income": str(q2(income[index])),
            "expenses": str(q2(spent[index])),
        }
        for index in range(bucket_count)
    ]


class AggregationService:
    """Dashboard KPIs and chart series for one owner."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TrackerRepository(db)

    def records_in_period(self, owner_id: UUID, period: ResolvedPeriod) -> tuple[list[Schedule], list[Expense]]:
        schedules = self.repo.list_schedules(owner_id, from_day=period.first_day, to_day=period.last_day)
        expenses = self.repo.list_expenses(owner_id, from_day=period.first_day, to_day=period.last_day)
        return list(schedules), list(expenses)

    def dashboard(self, *, context: RequestUserContext, period: ResolvedPeriod) -> dict[str, object]:
        schedules, expenses = self.records_in_period(context.user_id, period)
        totals = compute_totals(schedules, expenses)

        return {
            "period": period.serialize(),
            "kpis": totals.serialize(),
            "charts": {
                "income_by_weekday": income_by_weekday(schedules),
                "expenses_by_category": expenses_by_category(expenses),
                "weekly_trend": weekly_trend(period, schedules, expenses),
            },
        }

    def summary(self, *, context: RequestUserContext) -> dict[str, object]:
        totals = compute_totals(
            self.repo.list_schedules(context.user_id),
            self.repo.list_expenses(context.user_id),
        )
        return {"summary": totals.serialize()}
